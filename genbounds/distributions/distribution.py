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
This module contains the `Distribution` abstact base class.
"""

import abc
import jax.numpy as jnp
from dataclasses import dataclass
from genbounds.core.datatypes import (
    ChoiceMap,
    GenerativeFunction,
    Selection,
    Trace,
)
from genbounds.core.errors import InvalidObservation
from typing import Any, Callable, Tuple

#####
# DistributionTrace
#####


@dataclass(frozen=True, eq=False)
class DistributionTrace(Trace):
    gen_fn: Any
    args: Tuple
    value: Any
    score: Any

    def flatten(self):
        return (self.args, self.value, self.score), (self.gen_fn,)

    def get_gen_fn(self):
        return self.gen_fn

    def get_args(self):
        return self.args

    def get_retval(self):
        return self.value

    def get_score(self):
        return self.score

    def get_choices(self):
        return ChoiceMap.value(self.value)

    def project(self, selection: Selection):
        if selection.has_addr(()):
            return self.score
        else:
            return jnp.array(0.0)


#####
# Distribution
#####


class Distribution(GenerativeFunction):
    """
    A generative function with a single random choice, addressed by
    :code:`()`, whose density can be evaluated exactly.

    Its internal proposal is the distribution itself, so the
    :code:`generate` weight is the log density of the observed value when
    one is supplied, and zero otherwise.
    """

    @abc.abstractmethod
    def sample(self, key, *args):
        pass

    @abc.abstractmethod
    def logpdf(self, v, *args):
        pass

    def simulate(self, key, args):
        v = self.sample(key, *args)
        score = self.logpdf(v, *args)
        return DistributionTrace(self, args, v, score)

    def generate(self, key, args, observations: ChoiceMap):
        if observations.has_value():
            if len(observations) > 1:
                raise InvalidObservation(
                    [k for k in observations.get_addresses() if k != ()]
                )
            v = observations.get_value()
            w = self.logpdf(v, *args)
            return DistributionTrace(self, args, v, w), w
        elif observations.is_empty():
            tr = self.simulate(key, args)
            return tr, jnp.array(0.0)
        else:
            raise InvalidObservation(observations.get_addresses())


#####
# Distributions defined by a sampler and a log density
#####


@dataclass(frozen=True)
class ExactDensity(Distribution):
    sampler: Callable
    density: Callable
    name: str = "exact_density"

    def flatten(self):
        return (), (self.sampler, self.density, self.name)

    def sample(self, key, *args):
        return self.sampler(key, *args)

    def logpdf(self, v, *args):
        return jnp.sum(self.density(v, *args))

    def __repr__(self):
        return f"ExactDensity({self.name})"


def exact_density(sampler: Callable, logpdf: Callable, name: str = None):
    """
    Build a :code:`Distribution` from :code:`sampler(key, *args)` and
    :code:`logpdf(v, *args)`.
    """
    name = name or getattr(logpdf, "__name__", "exact_density")
    return ExactDensity(sampler, logpdf, name)
