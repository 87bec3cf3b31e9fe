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
from dataclasses import dataclass
from genbounds.builtin.handlers import GenerateHandler, SimulateHandler
from genbounds.core.datatypes import (
    ChoiceMap,
    GenerativeFunction,
    Selection,
    Trace,
    normalize_addr,
)
from genbounds.core.errors import InvalidObservation
from typing import Any, Callable, Tuple

#####
# BuiltinTrace
#####


@dataclass(frozen=True, eq=False)
class BuiltinTrace(Trace):
    gen_fn: "BuiltinGenerativeFunction"
    addresses: Tuple
    args: Tuple
    retval: Any
    subtraces: Tuple
    score: Any

    def flatten(self):
        return (self.args, self.retval, self.subtraces, self.score), (
            self.gen_fn,
            self.addresses,
        )

    def get_gen_fn(self):
        return self.gen_fn

    def get_args(self):
        return self.args

    def get_retval(self):
        return self.retval

    def get_score(self):
        return self.score

    def get_subtrace(self, addr):
        addr = normalize_addr(addr)
        return self.subtraces[self.addresses.index(addr)]

    def get_choices(self):
        choices = ChoiceMap.empty()
        for (addr, tr) in zip(self.addresses, self.subtraces):
            choices = choices.merge(tr.get_choices().prefix(addr))
        return choices

    def project(self, selection: Selection):
        weight = jnp.array(0.0)
        for (addr, tr) in zip(self.addresses, self.subtraces):
            weight = weight + tr.project(selection.get_subselection(addr))
        return weight


#####
# BuiltinGenerativeFunction
#####


@dataclass(frozen=True)
class BuiltinGenerativeFunction(GenerativeFunction):
    """
    A generative function defined by a Python function which calls
    :code:`trace` at each random choice.

    The source may use arbitrary Python control flow, but when the
    estimators batch particles with :code:`jax.vmap` the source is traced
    once, so branching must not depend on sampled values (use
    :code:`jax.numpy.where` or :code:`jax.lax.cond` for that).
    """

    source: Callable

    def flatten(self):
        return (), (self.source,)

    def simulate(self, key, args):
        args = tuple(args)
        with SimulateHandler(key) as handler:
            retval = self.source(*args)
        return BuiltinTrace(
            self,
            tuple(handler.addresses),
            args,
            retval,
            tuple(handler.subtraces),
            handler.score,
        )

    def generate(self, key, args, observations: ChoiceMap):
        args = tuple(args)
        with GenerateHandler(key, observations) as handler:
            retval = self.source(*args)
        unconsumed = handler.unconsumed()
        if unconsumed:
            raise InvalidObservation(unconsumed)
        tr = BuiltinTrace(
            self,
            tuple(handler.addresses),
            args,
            retval,
            tuple(handler.subtraces),
            handler.score,
        )
        return tr, handler.weight

    def __repr__(self):
        name = getattr(self.source, "__name__", self.source)
        return f"BuiltinGenerativeFunction({name})"


def gen(fn: Callable) -> BuiltinGenerativeFunction:
    return BuiltinGenerativeFunction(fn)
