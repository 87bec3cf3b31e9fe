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
import genbounds
import pytest

key = jax.random.PRNGKey(314159)


@genbounds.gen
def simple_normal():
    y1 = genbounds.trace("y1", genbounds.normal)(0.0, 1.0)
    y2 = genbounds.trace("y2", genbounds.normal)(y1, 1.0)
    return y1 + y2


@genbounds.gen
def hierarchical():
    z = genbounds.trace("z", genbounds.normal)(0.0, 1.0)
    s = genbounds.trace("sub", simple_normal)()
    return z + s


class TestGenerate:
    def test_fully_constrained_generate(self, benchmark):
        jitted = jax.jit(genbounds.generate(simple_normal))
        chm = genbounds.ChoiceMap.new({"y1": 0.5, "y2": 0.25})
        tr, w = benchmark(jitted, key, (), chm)
        out = tr.get_choices()
        test_score = genbounds.normal.logpdf(0.5, 0.0, 1.0) + genbounds.normal.logpdf(
            0.25, 0.5, 1.0
        )
        assert out["y1"] == 0.5
        assert out["y2"] == 0.25
        assert tr.get_score() == pytest.approx(test_score, 0.01)
        assert w == pytest.approx(test_score, 0.01)

    def test_partially_constrained_generate(self):
        chm = genbounds.ChoiceMap.new({"y2": 0.25})
        tr, w = jax.jit(genbounds.generate(simple_normal))(key, (), chm)
        y1 = tr["y1"]
        assert tr["y2"] == 0.25
        assert w == pytest.approx(genbounds.normal.logpdf(0.25, y1, 1.0), 1e-5)
        prior = genbounds.normal.logpdf(y1, 0.0, 1.0)
        assert tr.get_score() == pytest.approx(prior + w, 1e-5)

    def test_unconstrained_generate(self):
        empty = genbounds.ChoiceMap.empty()
        tr, w = simple_normal.generate(key, (), empty)
        assert w == 0.0
        assert tr["y1"] == simple_normal.simulate(key, ())["y1"]

    def test_hierarchical_generate(self):
        chm = genbounds.ChoiceMap.new({("sub", "y2"): 1.0})
        tr, w = hierarchical.generate(key, (), chm)
        assert tr["sub", "y2"] == 1.0
        sub_y1 = tr["sub", "y1"]
        assert w == pytest.approx(genbounds.normal.logpdf(1.0, sub_y1, 1.0), 1e-5)


class TestProject:
    def test_project_is_deterministic(self):
        tr = simple_normal.simulate(key, ())
        selection = genbounds.Selection(["y2"])
        project = genbounds.project(simple_normal)
        assert project(tr, selection) == project(tr, selection)

    def test_project_complements_to_score(self):
        tr = simple_normal.simulate(key, ())
        observed = genbounds.Selection(["y2"])
        latent = observed.complement()
        observed_weight = simple_normal.project(tr, observed)
        latent_weight = simple_normal.project(tr, latent)
        assert observed_weight == pytest.approx(
            tr.get_score() - latent_weight, 1e-5
        )
        assert observed_weight == pytest.approx(
            genbounds.normal.logpdf(tr["y2"], tr["y1"], 1.0), 1e-5
        )

    def test_project_all_and_none(self):
        tr = hierarchical.simulate(key, ())
        assert hierarchical.project(tr, genbounds.AllSelection()) == pytest.approx(
            tr.get_score(), 1e-5
        )
        assert hierarchical.project(tr, genbounds.NoneSelection()) == 0.0

    def test_project_hierarchical_prefix(self):
        tr = hierarchical.simulate(key, ())
        sub_weight = hierarchical.project(tr, genbounds.Selection(["sub"]))
        assert sub_weight == pytest.approx(tr.get_subtrace("sub").get_score(), 1e-5)
