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

import abc
import rich.tree as rich_tree
from dataclasses import dataclass, field
from genbounds.core.pytree import Pytree
from typing import Any, Mapping, Tuple

__all__ = [
    "normalize_addr",
    "ChoiceMap",
    "Selection",
    "AllSelection",
    "NoneSelection",
    "ComplementSelection",
    "Trace",
    "GenerativeFunction",
]


def normalize_addr(addr) -> Tuple:
    if isinstance(addr, tuple):
        return addr
    return (addr,)


def _has_prefix(addr: Tuple, prefix: Tuple):
    return addr[: len(prefix)] == prefix


#####
# ChoiceMap
#####


@dataclass(frozen=True, eq=False)
class ChoiceMap(Pytree):
    """
    An immutable map from addresses to the values of random choices.

    Addresses are tuples of strings; a bare string :code:`"x"` is shorthand
    for :code:`("x",)`. The empty tuple :code:`()` addresses the value of a
    distribution which was invoked at the top level.
    """

    addresses: Tuple
    values: Tuple

    def flatten(self):
        return (self.values,), (self.addresses,)

    @classmethod
    def new(cls, mapping: Mapping = None):
        if mapping is None:
            return cls.empty()
        addresses = []
        values = []
        for (addr, v) in mapping.items():
            addr = normalize_addr(addr)
            if addr in addresses:
                raise ValueError(f"Duplicate address {addr} in choice map.")
            addresses.append(addr)
            values.append(v)
        return cls(tuple(addresses), tuple(values))

    @classmethod
    def empty(cls):
        return cls((), ())

    @classmethod
    def value(cls, v):
        return cls(((),), (v,))

    def items(self):
        return zip(self.addresses, self.values)

    def get_addresses(self):
        return self.addresses

    def is_empty(self):
        return len(self.addresses) == 0

    def has_choice(self, addr):
        return normalize_addr(addr) in self.addresses

    def get_choice(self, addr):
        addr = normalize_addr(addr)
        for (k, v) in self.items():
            if k == addr:
                return v
        raise KeyError(f"ChoiceMap has no value at {addr}.")

    def has_value(self):
        return () in self.addresses

    def get_value(self):
        return self.get_choice(())

    def get_submap(self, prefix):
        prefix = normalize_addr(prefix)
        addresses = []
        values = []
        for (k, v) in self.items():
            if _has_prefix(k, prefix):
                addresses.append(k[len(prefix) :])
                values.append(v)
        return ChoiceMap(tuple(addresses), tuple(values))

    def prefix(self, prefix):
        prefix = normalize_addr(prefix)
        return ChoiceMap(
            tuple((*prefix, *k) for k in self.addresses),
            self.values,
        )

    def merge(self, other: "ChoiceMap"):
        """Right-biased merge: values in :code:`other` win on shared
        addresses."""
        kept = [(k, v) for (k, v) in self.items() if k not in other.addresses]
        addresses = tuple(k for (k, _) in kept) + other.addresses
        values = tuple(v for (_, v) in kept) + other.values
        return ChoiceMap(addresses, values)

    def filter(self, selection: "Selection"):
        kept = [(k, v) for (k, v) in self.items() if selection.has_addr(k)]
        return ChoiceMap(
            tuple(k for (k, _) in kept),
            tuple(v for (_, v) in kept),
        )

    def get_selection(self):
        return Selection(self.addresses)

    def __len__(self):
        return len(self.addresses)

    def __contains__(self, addr):
        return self.has_choice(addr)

    def __getitem__(self, addr):
        return self.get_choice(addr)

    def __rich_tree__(self):
        tree = rich_tree.Tree("[bold](ChoiceMap)")
        for (k, v) in self.items():
            tree.add(f"[blue]{'/'.join(map(str, k)) or '()'}[/blue] = {v}")
        return tree


#####
# Selection
#####


@dataclass(frozen=True)
class Selection(Pytree):
    """
    An immutable set of addresses. Selecting an address also selects every
    address below it, so :code:`Selection(["sub"])` selects
    :code:`("sub", "x")`.
    """

    addresses: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(
            self,
            "addresses",
            frozenset(map(normalize_addr, self.addresses)),
        )

    def flatten(self):
        return (), (self.addresses,)

    def has_addr(self, addr):
        addr = normalize_addr(addr)
        return any(_has_prefix(addr, selected) for selected in self.addresses)

    def get_subselection(self, prefix):
        prefix = normalize_addr(prefix)
        if prefix in self.addresses:
            return AllSelection()
        return Selection(
            frozenset(
                k[len(prefix) :]
                for k in self.addresses
                if _has_prefix(k, prefix) and len(k) > len(prefix)
            )
        )

    def complement(self):
        return ComplementSelection(selection=self)

    def __contains__(self, addr):
        return self.has_addr(addr)


@dataclass(frozen=True)
class AllSelection(Selection):
    def flatten(self):
        return (), ()

    def has_addr(self, addr):
        return True

    def get_subselection(self, prefix):
        return self

    def complement(self):
        return NoneSelection()


@dataclass(frozen=True)
class NoneSelection(Selection):
    def flatten(self):
        return (), ()

    def has_addr(self, addr):
        return False

    def get_subselection(self, prefix):
        return self

    def complement(self):
        return AllSelection()


@dataclass(frozen=True)
class ComplementSelection(Selection):
    selection: Selection = field(default_factory=NoneSelection)

    def flatten(self):
        return (), (self.selection,)

    @classmethod
    def unflatten(cls, data, xs):
        return ComplementSelection(selection=data[0])

    def has_addr(self, addr):
        return not self.selection.has_addr(addr)

    def get_subselection(self, prefix):
        return ComplementSelection(
            selection=self.selection.get_subselection(prefix)
        )

    def complement(self):
        return self.selection


#####
# Trace
#####


class Trace(Pytree):
    """
    A record of one execution of a generative function: its arguments,
    the values of its random choices, the log joint density of those
    choices (the score) and its return value.

    Concrete traces are frozen dataclasses. Inference code never modifies a
    trace; it asks a generative function for a new one.
    """

    @abc.abstractmethod
    def get_gen_fn(self):
        pass

    @abc.abstractmethod
    def get_args(self):
        pass

    @abc.abstractmethod
    def get_retval(self):
        pass

    @abc.abstractmethod
    def get_score(self):
        pass

    @abc.abstractmethod
    def get_choices(self) -> ChoiceMap:
        pass

    @abc.abstractmethod
    def project(self, selection: Selection):
        pass

    def has_choice(self, addr):
        return self.get_choices().has_choice(addr)

    def get_choice(self, addr):
        return self.get_choices().get_choice(addr)

    def __getitem__(self, addr):
        return self.get_choice(addr)

    def __rich_tree__(self):
        tree = rich_tree.Tree(f"[bold]({type(self).__name__})")
        tree.add(f"score = {self.get_score()}")
        tree.add(self.get_choices().__rich_tree__())
        tree.add(f"return = {self.get_retval()}")
        return tree


#####
# GenerativeFunction
#####


class GenerativeFunction(Pytree):
    """
    :code:`GenerativeFunction` is the abstract class of models which
    implement the generative function interface used by the estimators in
    :code:`genbounds.inference`:

    | Interface  | Semantics (informal)                                            |
    | ---------- | --------------------------------------------------------------- |
    | `simulate` | Sample every choice from the joint distribution                 |
    | `generate` | Sample unconstrained choices, hold observations fixed, weight   |
    | `project`  | Log density of the selected choices of an existing trace        |

    Estimators are written against this interface only. Randomness is
    explicit: every stochastic method takes a :code:`jax.random` key as its
    first argument, and never returns or mutates shared random state.
    """

    @abc.abstractmethod
    def simulate(self, key, args: Tuple) -> Trace:
        pass

    @abc.abstractmethod
    def generate(
        self,
        key,
        args: Tuple,
        observations: ChoiceMap,
    ) -> Tuple[Trace, Any]:
        """
        Returns a trace whose choices at the addresses in
        :code:`observations` are fixed to the observed values, along with
        the importance weight :math:`\\log p(t; args) - \\log q(t_{latent} |
        observations)` relative to the internal proposal (the prior).
        """

    def project(self, trace: Trace, selection: Selection):
        return trace.project(selection)
