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
Importance sampling with the model's internal proposal, giving a stochastic
lower bound on :math:`\\log p(x)`.

With :math:`N` particles and log weights :math:`w_i` from
:code:`generate`, the estimate :math:`\\hat{L} = \\log \\frac{1}{N} \\sum_i
e^{w_i}` satisfies :math:`E[e^{\\hat{L}}] = p(x)`. Markov's inequality on
:math:`e^{\\hat{L}} / p(x)` gives :math:`\\Pr(\\hat{L} < \\log p(x) +
\\delta) \\geq 1 - e^{-\\delta}`.
"""

import jax
import jax.tree_util as jtu
import logging
import numpy as np
from dataclasses import dataclass
from genbounds.core.datatypes import ChoiceMap, GenerativeFunction
from genbounds.core.numerics import check_log_weights
from genbounds.core.specialization import is_concrete
from genbounds.inference.datatypes import (
    BoundEstimate,
    BoundKind,
    ImportanceSample,
)

logger = logging.getLogger(__name__)


def check_num_particles(num_particles):
    if num_particles < 1:
        raise ValueError(f"num_particles must be >= 1, got {num_particles}.")


@dataclass(frozen=True)
class ImportanceEstimator:
    num_particles: int

    def __post_init__(self):
        check_num_particles(self.num_particles)

    def log_weights(
        self,
        key,
        model: GenerativeFunction,
        args,
        observations: ChoiceMap,
    ) -> ImportanceSample:
        """Draws the particles without checking their weights, so it can be
        called under :code:`jax.vmap`."""
        args = tuple(args)
        sub_keys = jax.random.split(key, self.num_particles)
        trs, lws = jax.vmap(
            lambda k: model.generate(k, args, observations),
        )(sub_keys)
        return ImportanceSample(trs, lws)

    def importance_sampling(
        self,
        key,
        model: GenerativeFunction,
        args,
        observations: ChoiceMap,
    ) -> ImportanceSample:
        samples = self.log_weights(key, model, args, observations)
        check_log_weights(samples.log_weight)
        return samples

    def estimate_lower_bound(
        self,
        key,
        model: GenerativeFunction,
        args,
        observations: ChoiceMap,
    ) -> BoundEstimate:
        samples = self.importance_sampling(key, model, args, observations)
        log_value = samples.log_marginal_likelihood_estimate()
        logger.debug(
            "lower bound with %d particles: %s", self.num_particles, log_value
        )
        return BoundEstimate(BoundKind.LOWER, log_value, self.num_particles)

    def resample(
        self,
        key,
        model: GenerativeFunction,
        args,
        observations: ChoiceMap,
        num_samples: int,
    ):
        """
        Draws :code:`num_particles` importance samples, then resamples
        :code:`num_samples` of their traces with probability proportional
        to their weights. The traces are approximate posterior samples;
        they play no part in the bound estimates.
        """
        key, sub_key = jax.random.split(key)
        samples = self.importance_sampling(sub_key, model, args, observations)
        return multinomial_resampling(key, samples, num_samples)


def multinomial_resampling(key, samples: ImportanceSample, num_samples: int):
    num_particles = samples.num_particles
    if num_samples < 1 or num_samples > num_particles:
        raise ValueError(
            f"num_samples must be in [1, {num_particles}], got {num_samples}."
        )
    lws = samples.log_weight
    if is_concrete(lws) and np.all(np.asarray(lws) == -np.inf):
        raise ValueError("Every particle has zero weight; nothing to resample.")
    parents = jax.random.categorical(key, lws, shape=(num_samples,))
    return jtu.tree_map(lambda v: v[parents], samples.trace)


def importance_sampling(key, model, args, observations, num_particles):
    return ImportanceEstimator(num_particles).importance_sampling(
        key, model, args, observations
    )


def estimate_lower_bound(key, model, args, observations, num_particles):
    return ImportanceEstimator(num_particles).estimate_lower_bound(
        key, model, args, observations
    )


def resample(key, model, args, observations, num_particles, num_samples):
    return ImportanceEstimator(num_particles).resample(
        key, model, args, observations, num_samples
    )
