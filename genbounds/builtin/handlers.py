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
Effect handlers which give :code:`trace` its meaning inside each of the
generative function interface methods.

Handlers live on a module-level stack. A GFI method pushes its handler,
runs the model's Python source, and pops it; every :code:`trace` call in
between is dispatched to the handler on top of the stack. Nested
generative functions push their own handler, so callees never see the
caller's state.

The handlers run while JAX traces a function (e.g. under :code:`jax.vmap`),
so the values they accumulate may be tracers. The bookkeeping they do in
Python (addresses, which observations were consumed) is static.
"""

import jax
import jax.numpy as jnp
from genbounds.core.datatypes import (
    ChoiceMap,
    GenerativeFunction,
    normalize_addr,
)
from genbounds.core.errors import (
    AddressReuse,
    InvalidObservation,
    TraceOutsideHandler,
)
from typing import Any, Callable, List

_HANDLER_STACK: List["Handler"] = []


class Handler(object):
    def __enter__(self):
        _HANDLER_STACK.append(self)
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is None:
            p = _HANDLER_STACK.pop()
            assert p is self
        else:
            try:
                loc = _HANDLER_STACK.index(self)
                del _HANDLER_STACK[loc:]
            except ValueError:
                pass

    def handle(self, addr, gen_fn: GenerativeFunction, args):
        raise NotImplementedError


def trace(addr: Any, gen_fn: GenerativeFunction) -> Callable:
    """
    Invoke :code:`gen_fn` at address :code:`addr`, binding its random
    choices into the caller's trace.

    Returns a callable which accepts the callee's arguments and returns its
    return value.

    Example
    -------

    .. code-block:: python

        import genbounds

        @genbounds.gen
        def model(mu):
            x = genbounds.trace("x", genbounds.normal)(mu, 1.0)
            y = genbounds.trace("y", genbounds.normal)(x, 0.5)
            return x + y
    """
    addr = normalize_addr(addr)

    def invoke(*args):
        if not _HANDLER_STACK:
            raise TraceOutsideHandler(addr)
        handler = _HANDLER_STACK[-1]
        return handler.handle(addr, gen_fn, args)

    return invoke


#####
# GFI handlers
#####


class _RecordingHandler(Handler):
    def __init__(self, key):
        self.key = key
        self.score = jnp.array(0.0)
        self.addresses = []
        self.subtraces = []

    def visit(self, addr):
        if addr in self.addresses:
            raise AddressReuse(addr)

    def record(self, addr, tr):
        self.addresses.append(addr)
        self.subtraces.append(tr)
        self.score = self.score + tr.get_score()


class SimulateHandler(_RecordingHandler):
    def handle(self, addr, gen_fn, args):
        self.visit(addr)
        self.key, sub_key = jax.random.split(self.key)
        tr = gen_fn.simulate(sub_key, args)
        self.record(addr, tr)
        return tr.get_retval()


class GenerateHandler(_RecordingHandler):
    def __init__(self, key, observations: ChoiceMap):
        super().__init__(key)
        self.observations = observations
        self.weight = jnp.array(0.0)

    def handle(self, addr, gen_fn, args):
        self.visit(addr)
        sub_map = self.observations.get_submap(addr)
        self.key, sub_key = jax.random.split(self.key)
        try:
            tr, w = gen_fn.generate(sub_key, args, sub_map)
        except InvalidObservation as e:
            raise InvalidObservation([(*addr, *k) for k in e.addresses]) from e
        self.record(addr, tr)
        self.weight = self.weight + w
        return tr.get_retval()

    def unconsumed(self):
        return [
            k
            for k in self.observations.get_addresses()
            if not any(k[: len(addr)] == addr for addr in self.addresses)
        ]
