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

"""Contains the Pytree class."""

import abc
import jax.tree_util as jtu
import jax.numpy as jnp
import numpy as np
from genbounds.core.specialization import is_concrete

__all__ = [
    "Pytree",
    "tree_stack",
    "tree_unstack",
]


class Pytree(metaclass=abc.ABCMeta):
    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        jtu.register_pytree_node(
            cls,
            cls.flatten,
            cls.unflatten,
        )

    @abc.abstractmethod
    def flatten(self):
        pass

    @classmethod
    def unflatten(cls, data, xs):
        return cls(*data, *xs)


#####
# Utilities
#####


def tree_stack(trees):
    """
    Takes a list of trees and stacks every corresponding leaf.

    For example, given two trees ((a, b), c) and ((a', b'), c'), returns
    ((stack(a, a'), stack(b, b')), stack(c, c')).

    Concrete leaves are stacked with :code:`numpy`, so they are not lifted
    to :code:`jax.core.Tracer` values.
    """
    leaves_list = []
    treedef_list = []
    for tree in trees:
        leaves, treedef = jtu.tree_flatten(tree)
        leaves_list.append(leaves)
        treedef_list.append(treedef)

    grouped_leaves = zip(*leaves_list)
    result_leaves = [
        np.stack(leaf) if all(map(is_concrete, leaf)) else jnp.stack(leaf)
        for leaf in grouped_leaves
    ]
    return treedef_list[0].unflatten(result_leaves)


def tree_unstack(tree):
    """
    Takes a tree and turns it into a list of trees. Inverse of tree_stack.

    Given a tree ((a, b), c), where a, b, and c all have first
    dimension k, returns k trees [((a[0], b[0]), c[0]), ...].

    Used to turn the output of a vmapped estimator into per-trial values.
    """
    leaves, treedef = jtu.tree_flatten(tree)
    n_trees = leaves[0].shape[0]
    new_leaves = [[] for _ in range(n_trees)]
    for leaf in leaves:
        for i in range(n_trees):
            new_leaves[i].append(leaf[i])
    return [treedef.unflatten(leaf) for leaf in new_leaves]
