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
Variational inference whose approximation error the sandwich estimators
measure.

Variational parameters live in an explicit :code:`ParameterStore` value,
which is passed into the guide as its first argument and returned, updated,
by :code:`VariationalInference.fit`. The optimizer is any
:code:`optax.GradientTransformation`.
"""

import jax
import jax.numpy as jnp
import logging
import numpy as np
import optax
from dataclasses import dataclass
from genbounds.core.datatypes import ChoiceMap, GenerativeFunction
from genbounds.core.pytree import Pytree
from typing import Any, Mapping, Tuple

logger = logging.getLogger(__name__)

#####
# Parameters
#####


@dataclass(frozen=True, eq=False)
class ParameterStore(Pytree):
    names: Tuple
    values: Tuple

    def flatten(self):
        return (self.values,), (self.names,)

    @classmethod
    def new(cls, params: Mapping[str, Any]):
        names = tuple(params.keys())
        values = tuple(jnp.asarray(params[k], dtype=float) for k in names)
        return cls(names, values)

    def __getitem__(self, name):
        return self.values[self.names.index(name)]

    def as_dict(self):
        return dict(zip(self.names, self.values))

    def apply_updates(self, updates: "ParameterStore"):
        return optax.apply_updates(self, updates)


#####
# ELBO
#####


def elbo(
    key,
    model: GenerativeFunction,
    guide: GenerativeFunction,
    model_args: Tuple,
    observations: ChoiceMap,
    params: ParameterStore,
    num_samples: int = 1,
    guide_args: Tuple = (),
):
    """
    Monte Carlo estimate of the evidence lower bound
    :math:`E_{q(z; \\theta)}[\\log p(z, x) - \\log q(z; \\theta)]`.

    The guide is called as :code:`guide(params, *guide_args)` and must
    propose every latent choice of the model. Guides built from
    reparameterized distributions (e.g. :code:`normal`) give pathwise
    gradients with respect to :code:`params`.
    """
    model_args = tuple(model_args)

    def _single(key):
        guide_key, model_key = jax.random.split(key)
        guide_tr = guide.simulate(guide_key, (params, *guide_args))
        constraints = observations.merge(guide_tr.get_choices())
        model_tr, w = model.generate(model_key, model_args, constraints)
        missing = [
            k
            for k in model_tr.get_choices().get_addresses()
            if k not in constraints.get_addresses()
        ]
        if missing:
            raise ValueError(f"The guide does not propose latents at {missing}.")
        return w - guide_tr.get_score()

    sub_keys = jax.random.split(key, num_samples)
    return jnp.mean(jax.vmap(_single)(sub_keys))


#####
# Optimization
#####


@dataclass(frozen=True)
class VariationalInference:
    model: GenerativeFunction
    guide: GenerativeFunction
    optimizer: optax.GradientTransformation
    num_samples: int = 1

    def elbo(self, key, params, model_args, observations, guide_args=()):
        return elbo(
            key,
            self.model,
            self.guide,
            model_args,
            observations,
            params,
            self.num_samples,
            guide_args,
        )

    def fit(
        self,
        key,
        params: ParameterStore,
        model_args: Tuple,
        observations: ChoiceMap,
        num_steps: int,
        guide_args: Tuple = (),
    ):
        """
        Maximizes the ELBO for :code:`num_steps` optimizer steps and returns
        the updated :code:`ParameterStore` together with the ELBO estimate
        at each step. The input store is left untouched.
        """

        def _loss(params, key):
            return -self.elbo(key, params, model_args, observations, guide_args)

        @jax.jit
        def _step(params, opt_state, key):
            loss, grads = jax.value_and_grad(_loss)(params, key)
            updates, opt_state = self.optimizer.update(grads, opt_state, params)
            return params.apply_updates(updates), opt_state, -loss

        opt_state = self.optimizer.init(params)
        history = []
        for (i, sub_key) in enumerate(jax.random.split(key, num_steps)):
            params, opt_state, value = _step(params, opt_state, sub_key)
            history.append(float(value))
            if (i + 1) % 100 == 0:
                logger.debug("step %d: elbo = %.4f", i + 1, history[-1])
        return params, np.array(history)
