# Copyright 2022 MIT Probabilistic Computing Project
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import jax
import jax.numpy as jnp
import numpy as np
import genbounds
import pytest

key = jax.random.PRNGKey(314159)


@genbounds.gen
def conjugate():
    z = genbounds.trace("z", genbounds.normal)(0.0, 1.0)
    x = genbounds.trace("x", genbounds.normal)(z, 1.0)
    return x


@genbounds.gen
def heading_model():
    x = genbounds.trace("x", genbounds.normal)(1.0, 1.0)
    y = genbounds.trace("y", genbounds.normal)(0.0, 1.0)
    genbounds.trace("heading", genbounds.von_mises)(jnp.arctan2(y, x), 50.0)
    return x, y


def mean_gap(model, selection, num_particles, num_trials):
    results = genbounds.evaluate(
        key, model, (), selection, num_particles, num_trials
    )
    return genbounds.SandwichReport.from_results(results).mean_gap


class TestSandwich:
    def test_evaluate(self, benchmark):
        evaluator = genbounds.SandwichEvaluator.new(
            conjugate, genbounds.Selection(["x"]), 100, 20
        )
        results = benchmark(evaluator.evaluate, key, ())
        assert len(results) == 20
        for r in results:
            assert isinstance(r, genbounds.SandwichResult)
            assert r.observation.get_addresses() == (("x",),)
            assert r.lower.kind == genbounds.BoundKind.LOWER
            assert r.upper.kind == genbounds.BoundKind.UPPER
            assert r.lower.num_particles == 100
        observed = [float(r.observation["x"]) for r in results]
        assert len(set(observed)) == 20

    def test_unbatched_trials_match(self):
        selection = genbounds.Selection(["x"])
        batched = genbounds.evaluate(key, conjugate, (), selection, 10, 5)
        unbatched = genbounds.evaluate(
            key, conjugate, (), selection, 10, 5, batch_trials=False, progress=True
        )
        for (b, u) in zip(batched, unbatched):
            assert float(b.observation["x"]) == pytest.approx(
                float(u.observation["x"]), abs=1e-4
            )
            assert float(b.lower) == pytest.approx(float(u.lower), abs=1e-4)
            assert float(b.upper) == pytest.approx(float(u.upper), abs=1e-4)

    def test_gap_shrinks_with_particles(self):
        selection = genbounds.Selection(["x"])
        coarse = mean_gap(conjugate, selection, 10, 100)
        fine = mean_gap(conjugate, selection, 1000, 100)
        assert fine < coarse
        assert fine >= -0.05

    def test_heading_model(self):
        selection = genbounds.Selection(["heading"])
        coarse = mean_gap(heading_model, selection, 10, 200)
        fine = mean_gap(heading_model, selection, 10000, 200)
        assert coarse > 2.0
        assert fine < coarse
        assert fine < 0.5

    def test_invalid_trials(self):
        with pytest.raises(ValueError):
            genbounds.SandwichEvaluator.new(
                conjugate, genbounds.Selection(["x"]), 10, 0
            )


def result(lower, upper):
    return genbounds.SandwichResult(
        genbounds.ChoiceMap.new({"x": 0.0}),
        genbounds.BoundEstimate(genbounds.BoundKind.LOWER, jnp.array(lower), 10),
        genbounds.BoundEstimate(genbounds.BoundKind.UPPER, jnp.array(upper), 10),
    )


class TestSandwichReport:
    def test_crossed(self):
        assert result(-1.0, -2.0).crossed
        assert not result(-2.0, -1.0).crossed
        assert result(-2.0, -1.0).gap == pytest.approx(1.0)

    def test_report(self):
        results = [result(-2.0, -1.0), result(-1.0, -1.5), result(-3.0, -2.0)]
        report = genbounds.SandwichReport.from_results(results)
        assert report.num_trials == 3
        assert report.num_particles == 10
        assert report.num_crossed == 1
        assert report.mean_lower == pytest.approx(-2.0)
        assert report.mean_upper == pytest.approx(-1.5)
        assert report.mean_gap == pytest.approx(0.5)
        assert report.kl_gaps is None
        assert report.mean_kl_gap is None

    def test_kl_gap(self):
        results = [result(-2.0, -1.0), result(-3.0, -2.0)]
        report = genbounds.SandwichReport.from_results(results, elbos=[-1.5, -2.5])
        np.testing.assert_allclose(report.kl_gaps, [0.5, 0.5])
        assert report.mean_kl_gap == pytest.approx(0.5)
        with pytest.raises(ValueError):
            genbounds.kl_gap(results, [-1.0])

    def test_empty_report(self):
        with pytest.raises(ValueError):
            genbounds.SandwichReport.from_results([])
