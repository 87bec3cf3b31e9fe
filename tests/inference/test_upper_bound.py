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


def log_marginal(x):
    return genbounds.normal.logpdf(x, 0.0, jnp.sqrt(2.0))


selection = genbounds.Selection(["x"])


def truth_minus_upper(key, num_particles):
    exact_key, key = jax.random.split(key)
    exact = genbounds.ExactConditionalTrace.simulate(
        exact_key, conjugate, (), selection
    )
    estimate = genbounds.estimate_upper_bound(key, exact, conjugate, num_particles)
    return log_marginal(exact.get_observations()["x"]) - estimate.log_value


@pytest.fixture(scope="module")
def upper_errors():
    keys = jax.random.split(key, 2000)
    return np.asarray(jax.vmap(lambda k: truth_minus_upper(k, 10))(keys))


class TestUpperBound:
    def test_upper_bound(self, benchmark):
        exact = genbounds.ExactConditionalTrace.simulate(key, conjugate, (), selection)
        estimator = genbounds.StochasticUpperBoundEstimator(100)
        estimate = benchmark(estimator.estimate_upper_bound, key, exact, conjugate)
        assert estimate.kind == genbounds.BoundKind.UPPER
        assert estimate.num_particles == 100
        x = exact.get_observations()["x"]
        assert float(estimate) == pytest.approx(float(log_marginal(x)), abs=0.1)

    def test_single_particle_is_projection(self):
        exact = genbounds.ExactConditionalTrace.simulate(key, conjugate, (), selection)
        estimate = genbounds.estimate_upper_bound(key, exact, conjugate, 1)
        assert float(estimate) == pytest.approx(float(exact.project()), 1e-6)
        tr = exact.trace
        assert float(estimate) == pytest.approx(
            float(genbounds.normal.logpdf(tr["x"], tr["z"], 1.0)), 1e-5
        )

    def test_exact_particle_comes_first(self):
        exact = genbounds.ExactConditionalTrace.simulate(key, conjugate, (), selection)
        estimator = genbounds.StochasticUpperBoundEstimator(5)
        lws = estimator.log_weights(key, exact, conjugate)
        assert lws.shape == (5,)
        assert float(lws[0]) == pytest.approx(float(exact.project()), 1e-6)

    @pytest.mark.parametrize("delta", [1.0, 2.0, 4.0])
    def test_markov_tail(self, upper_errors, delta):
        frequency = np.mean(upper_errors >= delta)
        assert frequency <= np.exp(-delta) + 0.02

    def test_biased_high_in_log_space(self, upper_errors):
        assert np.mean(upper_errors) < 0.0

    def test_exact_conditional_trace(self):
        exact = genbounds.ExactConditionalTrace.simulate(key, conjugate, (), selection)
        assert exact.get_observations().get_addresses() == (("x",),)
        assert exact.get_latents().get_addresses() == (("z",),)
        assert exact.get_args() == ()
