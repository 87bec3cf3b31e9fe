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

"""
A stochastic upper bound on :math:`\\log p(x)`, obtained by replacing one
importance sampling particle with an exact posterior sample.

Particle 0 is the exact sample :math:`z^* \\sim p(z | x)`, with log weight
:code:`project(trace, selection)`; particles :math:`1, \\ldots, N - 1` come
from :code:`generate`. Averaged over which index holds the exact sample,
:math:`e^{-\\hat{U}}` is an unbiased estimate of :math:`1 / p(x)`, so
Markov's inequality gives :math:`\\Pr(\\hat{U} > \\log p(x) - \\delta) \\geq
1 - e^{-\\delta}` for every :math:`N \\geq 1`.
"""

import jax
import jax.numpy as jnp
import logging
from dataclasses import dataclass
from genbounds.core.datatypes import GenerativeFunction, Selection
from genbounds.core.errors import MissingExactSample
from genbounds.core.numerics import check_log_weights, log_mean_exp
from genbounds.inference.datatypes import (
    BoundEstimate,
    BoundKind,
    ExactConditionalTrace,
)
from genbounds.inference.importance import check_num_particles

logger = logging.getLogger(__name__)


def _check_exact(
    exact,
    model: GenerativeFunction = None,
    selection: Selection = None,
) -> ExactConditionalTrace:
    if not isinstance(exact, ExactConditionalTrace):
        raise MissingExactSample(exact)
    if model is not None and model != exact.model:
        raise MissingExactSample(
            exact,
            reason=f"The exact sample was drawn from {exact.model}, not {model}.",
        )
    if selection is not None and selection != exact.selection:
        raise MissingExactSample(
            exact,
            reason=(
                f"The exact sample is conditioned on {exact.selection}, "
                f"not {selection}."
            ),
        )
    return exact


@dataclass(frozen=True)
class StochasticUpperBoundEstimator:
    num_particles: int

    def __post_init__(self):
        check_num_particles(self.num_particles)

    def log_weights(
        self,
        key,
        exact: ExactConditionalTrace,
        model: GenerativeFunction = None,
        selection: Selection = None,
    ):
        """
        Returns the :code:`num_particles` log weights, the exact particle
        first. Weights are not checked here, so this can be called under
        :code:`jax.vmap`.
        """
        exact = _check_exact(exact, model, selection)
        model = exact.model
        exact_lw = jnp.atleast_1d(exact.project())
        if self.num_particles == 1:
            return exact_lw
        args = exact.get_args()
        observations = exact.get_observations()
        sub_keys = jax.random.split(key, self.num_particles - 1)
        _, lws = jax.vmap(
            lambda k: model.generate(k, args, observations),
        )(sub_keys)
        return jnp.concatenate([exact_lw, lws])

    def estimate_upper_bound(
        self,
        key,
        exact: ExactConditionalTrace,
        model: GenerativeFunction = None,
        selection: Selection = None,
    ) -> BoundEstimate:
        lws = self.log_weights(key, exact, model, selection)
        # The exact sample has positive density under the model.
        check_log_weights(lws[:1], allow_zero=False)
        check_log_weights(lws[1:])
        log_value = log_mean_exp(lws)
        logger.debug(
            "upper bound with %d particles: %s", self.num_particles, log_value
        )
        return BoundEstimate(BoundKind.UPPER, log_value, self.num_particles)


def estimate_upper_bound(key, exact, model, num_particles, selection=None):
    return StochasticUpperBoundEstimator(num_particles).estimate_upper_bound(
        key, exact, model, selection
    )
