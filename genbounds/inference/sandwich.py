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
Sandwiching :math:`\\log p(x)` between a stochastic lower and upper bound,
over observations simulated from the model itself.

Each trial simulates latents and observations jointly. The observations
become the conditioning event for the importance sampling lower bound, and
the latents are an exact posterior sample for them, which seeds the upper
bound. For small :code:`num_particles` the two bounds may cross on a given
trial; that is an expected statistical event, and it is reported rather
than hidden.
"""

import jax
import jax.numpy as jnp
import jax.tree_util as jtu
import logging
import numpy as np
from dataclasses import dataclass
from genbounds.core.datatypes import ChoiceMap, GenerativeFunction, Selection
from genbounds.core.numerics import check_log_weights, log_mean_exp
from genbounds.core.pytree import Pytree, tree_unstack
from genbounds.inference.datatypes import (
    BoundEstimate,
    BoundKind,
    ExactConditionalTrace,
)
from genbounds.inference.importance import ImportanceEstimator
from genbounds.inference.upper_bound import StochasticUpperBoundEstimator
from rich.progress import track
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

#####
# Results
#####


@dataclass(frozen=True, eq=False)
class SandwichResult(Pytree):
    observation: ChoiceMap
    lower: BoundEstimate
    upper: BoundEstimate

    def flatten(self):
        return (self.observation, self.lower, self.upper), ()

    @property
    def gap(self):
        return float(self.upper.log_value) - float(self.lower.log_value)

    @property
    def crossed(self):
        return float(self.upper.log_value) < float(self.lower.log_value)


@dataclass(frozen=True)
class SandwichReport:
    """
    Aggregate of a list of :code:`SandwichResult`. When the caller supplies
    one ELBO estimate per observation, :code:`kl_gaps` holds
    :math:`\\hat{U} - \\text{ELBO}`, which estimates (an upper bound on) the
    KL divergence from the variational posterior to the true posterior.
    """

    num_trials: int
    num_particles: int
    mean_lower: float
    mean_upper: float
    mean_gap: float
    num_crossed: int
    kl_gaps: Optional[np.ndarray] = None

    @property
    def mean_kl_gap(self):
        if self.kl_gaps is None:
            return None
        return float(np.mean(self.kl_gaps))

    @classmethod
    def from_results(cls, results: Sequence[SandwichResult], elbos=None):
        if not results:
            raise ValueError("Cannot summarize an empty list of results.")
        lowers = np.array([float(r.lower.log_value) for r in results])
        uppers = np.array([float(r.upper.log_value) for r in results])
        kl_gaps = None
        if elbos is not None:
            kl_gaps = kl_gap(results, elbos)
        return cls(
            num_trials=len(results),
            num_particles=results[0].lower.num_particles,
            mean_lower=float(np.mean(lowers)),
            mean_upper=float(np.mean(uppers)),
            mean_gap=float(np.mean(uppers - lowers)),
            num_crossed=int(np.sum(uppers < lowers)),
            kl_gaps=kl_gaps,
        )


def kl_gap(results: Sequence[SandwichResult], elbos):
    elbos = np.asarray(elbos, dtype=float)
    if elbos.shape != (len(results),):
        raise ValueError(
            f"Expected one ELBO per result ({len(results)}), "
            f"got shape {elbos.shape}."
        )
    uppers = np.array([float(r.upper.log_value) for r in results])
    return uppers - elbos


#####
# Evaluator
#####


@dataclass(frozen=True)
class SandwichConfig:
    num_particles: int
    num_trials: int
    # vmap all trials into one computation; otherwise run them one at a time.
    batch_trials: bool = True
    progress: bool = False


@dataclass(frozen=True)
class SandwichEvaluator:
    model: GenerativeFunction
    selection: Selection
    config: SandwichConfig

    @classmethod
    def new(
        cls,
        model: GenerativeFunction,
        selection: Selection,
        num_particles: int,
        num_trials: int,
        **kwargs,
    ):
        config = SandwichConfig(num_particles, num_trials, **kwargs)
        return cls(model, selection, config)

    def __post_init__(self):
        if self.config.num_trials < 1:
            raise ValueError(
                f"num_trials must be >= 1, got {self.config.num_trials}."
            )

    def _trial(self, key, args):
        n = self.config.num_particles
        exact_key, lower_key, upper_key = jax.random.split(key, 3)
        exact = ExactConditionalTrace.simulate(
            exact_key, self.model, args, self.selection
        )
        observations = exact.get_observations()
        lower_lws = ImportanceEstimator(n).log_weights(
            lower_key, self.model, args, observations
        ).log_weight
        upper_lws = StochasticUpperBoundEstimator(n).log_weights(
            upper_key, exact, self.model, self.selection
        )
        return observations, lower_lws, upper_lws

    def _results(self, observations, lower_lws, upper_lws):
        check_log_weights(lower_lws)
        check_log_weights(upper_lws[..., :1], allow_zero=False)
        check_log_weights(upper_lws[..., 1:])
        n = self.config.num_particles
        lowers = np.asarray(log_mean_exp(lower_lws))
        uppers = np.asarray(log_mean_exp(upper_lws))
        return [
            SandwichResult(
                obs,
                BoundEstimate(BoundKind.LOWER, jnp.asarray(lo), n),
                BoundEstimate(BoundKind.UPPER, jnp.asarray(up), n),
            )
            for (obs, lo, up) in zip(observations, lowers, uppers)
        ]

    def evaluate(self, key, args):
        """
        Runs :code:`num_trials` independent trials and returns one
        :code:`SandwichResult` per trial. Every trial, and every particle
        within a trial, gets its own key from :code:`jax.random.split`.
        """
        args = tuple(args)
        trial_keys = jax.random.split(key, self.config.num_trials)
        trial = jax.jit(lambda k: self._trial(k, args))
        if self.config.batch_trials:
            observations, lower_lws, upper_lws = jax.vmap(trial)(trial_keys)
            if jtu.tree_leaves(observations):
                observations = tree_unstack(observations)
            else:
                observations = [observations] * self.config.num_trials
        else:
            keys = tree_unstack(trial_keys)
            if self.config.progress:
                keys = track(keys, description="Sandwich trials")
            outputs = [trial(k) for k in keys]
            observations = [o for (o, _, _) in outputs]
            lower_lws = jnp.stack([lw for (_, lw, _) in outputs])
            upper_lws = jnp.stack([uw for (_, _, uw) in outputs])
        results = self._results(observations, lower_lws, upper_lws)
        num_crossed = sum(r.crossed for r in results)
        if num_crossed:
            logger.warning(
                "%d of %d trials have crossed bounds (upper < lower) "
                "with %d particles.",
                num_crossed,
                len(results),
                self.config.num_particles,
            )
        return results


def evaluate(key, model, args, selection, num_particles, num_trials, **kwargs):
    evaluator = SandwichEvaluator.new(
        model, selection, num_particles, num_trials, **kwargs
    )
    return evaluator.evaluate(key, args)
