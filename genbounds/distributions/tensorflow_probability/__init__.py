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

import jax.numpy as jnp
from tensorflow_probability.substrates import jax as tfp
from genbounds.distributions.distribution import Distribution
from dataclasses import dataclass
from typing import Callable

tfd = tfp.distributions


@dataclass(frozen=True)
class TFPDistribution(Distribution):
    distribution: Callable
    name: str = "tfp"

    def flatten(self):
        return (), (self.distribution, self.name)

    def sample(self, key, *args):
        dist = self.distribution(*args)
        return dist.sample(seed=key)

    def logpdf(self, v, *args):
        dist = self.distribution(*args)
        return jnp.sum(dist.log_prob(v))

    def __repr__(self):
        return f"TFPDistribution({self.name})"


def tfp_distribution(dist: Callable, name: str = None):
    return TFPDistribution(dist, name or getattr(dist, "__name__", "tfp"))


normal = tfp_distribution(tfd.Normal, "normal")
von_mises = tfp_distribution(tfd.VonMises, "von_mises")
uniform = tfp_distribution(tfd.Uniform, "uniform")
beta = tfp_distribution(tfd.Beta, "beta")
gamma = tfp_distribution(tfd.Gamma, "gamma")
exponential = tfp_distribution(tfd.Exponential, "exponential")
laplace = tfp_distribution(tfd.Laplace, "laplace")
student_t = tfp_distribution(tfd.StudentT, "student_t")
half_normal = tfp_distribution(tfd.HalfNormal, "half_normal")
log_normal = tfp_distribution(tfd.LogNormal, "log_normal")
poisson = tfp_distribution(tfd.Poisson, "poisson")
mv_normal_diag = tfp_distribution(tfd.MultivariateNormalDiag, "mv_normal_diag")


def _bernoulli(logits):
    return tfd.Bernoulli(logits=logits)


def _flip(p):
    return tfd.Bernoulli(probs=p)


def _categorical(logits):
    return tfd.Categorical(logits=logits)


bernoulli = tfp_distribution(_bernoulli, "bernoulli")
flip = tfp_distribution(_flip, "flip")
categorical = tfp_distribution(_categorical, "categorical")

__all__ = [
    "tfd",
    "TFPDistribution",
    "tfp_distribution",
    "normal",
    "von_mises",
    "uniform",
    "beta",
    "gamma",
    "exponential",
    "laplace",
    "student_t",
    "half_normal",
    "log_normal",
    "poisson",
    "mv_normal_diag",
    "bernoulli",
    "flip",
    "categorical",
]
