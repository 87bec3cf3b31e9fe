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

import enum
import jax.numpy as jnp
from dataclasses import dataclass, field
from genbounds.core.datatypes import (
    ChoiceMap,
    GenerativeFunction,
    Selection,
    Trace,
)
from genbounds.core.errors import InvalidObservation, MissingExactSample
from genbounds.core.numerics import (
    effective_sample_size,
    log_mean_exp,
    log_normalize,
)
from genbounds.core.pytree import Pytree
from typing import Any

#####
# Bound estimates
#####


class BoundKind(enum.Enum):
    LOWER = "lower"
    UPPER = "upper"


@dataclass(frozen=True, eq=False)
class BoundEstimate(Pytree):
    """
    A stochastic bound on :math:`\\log p(x)`.

    A :code:`LOWER` estimate satisfies :math:`\\Pr(\\hat{L} < \\log p(x) +
    \\delta) \\geq 1 - e^{-\\delta}` and an :code:`UPPER` estimate satisfies
    :math:`\\Pr(\\hat{U} > \\log p(x) - \\delta) \\geq 1 - e^{-\\delta}`, for
    every :math:`\\delta \\geq 0`. These are high-probability statements,
    not deterministic guarantees.
    """

    kind: BoundKind
    log_value: Any
    num_particles: int

    def flatten(self):
        return (self.log_value,), (self.kind, self.num_particles)

    @classmethod
    def unflatten(cls, data, xs):
        kind, num_particles = data
        return BoundEstimate(kind, xs[0], num_particles)

    def __float__(self):
        return float(self.log_value)


#####
# Importance samples
#####


@dataclass(frozen=True, eq=False)
class ImportanceSample(Pytree):
    """
    A trace with its importance weight in log space. The estimators return
    a batch of particles as a single :code:`ImportanceSample` whose leaves
    carry a leading particle axis.
    """

    trace: Trace
    log_weight: Any

    def flatten(self):
        return (self.trace, self.log_weight), ()

    @property
    def num_particles(self):
        return jnp.shape(self.log_weight)[0]

    def log_marginal_likelihood_estimate(self):
        return log_mean_exp(self.log_weight)

    def normalized_log_weights(self):
        return log_normalize(self.log_weight)

    def effective_sample_size(self):
        return effective_sample_size(self.log_weight)


#####
# Exact conditional samples
#####


# Witness that an ExactConditionalTrace was built by `simulate`.
_SIMULATED = object()


@dataclass(frozen=True, eq=False)
class ExactConditionalTrace(Pytree):
    """
    A trace whose latent choices are an exact sample from the posterior
    given the choices at :code:`selection`.

    Exactness holds by construction: :code:`simulate` draws latents and
    observations jointly from the model, then treats the simulated
    observations as the conditioning event. This is the only input the
    stochastic upper bound accepts. A plain :code:`Trace` is rejected, and
    so is any instance not built by :code:`simulate`.
    """

    model: GenerativeFunction
    selection: Selection
    trace: Trace
    witness: Any = field(default=None, repr=False)

    def __post_init__(self):
        if self.witness is not _SIMULATED:
            raise MissingExactSample(
                self.trace,
                reason=(
                    "An `ExactConditionalTrace` can only be built by "
                    "`ExactConditionalTrace.simulate`."
                ),
            )

    def flatten(self):
        return (self.trace,), (self.model, self.selection, self.witness)

    @classmethod
    def unflatten(cls, data, xs):
        model, selection, witness = data
        return cls(model, selection, xs[0], witness)

    @classmethod
    def simulate(cls, key, model: GenerativeFunction, args, selection: Selection):
        tr = model.simulate(key, tuple(args))
        addresses = tr.get_choices().get_addresses()
        undefined = [
            k
            for k in sorted(selection.addresses)
            if not any(addr[: len(k)] == k for addr in addresses)
        ]
        if undefined:
            raise InvalidObservation(undefined)
        return cls(model, selection, tr, _SIMULATED)

    def get_args(self):
        return self.trace.get_args()

    def get_observations(self) -> ChoiceMap:
        return self.trace.get_choices().filter(self.selection)

    def get_latents(self) -> ChoiceMap:
        return self.trace.get_choices().filter(self.selection.complement())

    def project(self):
        return self.model.project(self.trace, self.selection)
