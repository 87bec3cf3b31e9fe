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
The generative function interface is the set of methods the estimators in
:code:`genbounds.inference` are written against. Any model which implements
them, whether written with :code:`gen` or by hand, can be sandwiched.

This module exposes the interface as a set of generic Python functions.
When called with :code:`f: GenerativeFunction`, they return the
corresponding :code:`GenerativeFunction` method, which composes well with
:code:`jax.jit` and :code:`jax.vmap`.
"""


def simulate(f):
    """
    :code:`simulate` accepts a generative function :code:`f` and returns a
    function which implements the below semantics.

    Given :code:`key: jax.random.PRNGKey` and :code:`args: tuple`, sample
    every random choice :math:`t \\sim p(\\cdot; args)`, and return a
    :code:`Trace` holding :math:`t`, the arguments, the return value and the
    score :math:`\\log p(t; args)`.

    Example
    -------

    .. code-block:: python

        import jax
        import genbounds

        @genbounds.gen
        def model():
            x = genbounds.trace("x", genbounds.normal)(0.0, 1.0)
            return x

        key = jax.random.PRNGKey(314159)
        tr = genbounds.simulate(model)(key, ())
        print(tr.get_score())
    """
    return lambda *args: f.simulate(*args)


def generate(f):
    """
    :code:`generate` accepts a generative function :code:`f` and returns a
    function which implements the below semantics.

    Given :code:`key`, :code:`args` and :code:`observations: ChoiceMap`,
    sample the unobserved choices from :code:`f`'s internal proposal with
    the observed choices held fixed, and return :code:`(trace, log_weight)`
    where :math:`\\log w = \\log p(t; args) - \\log q(t_{latent};
    observations)`.
    """
    return lambda *args: f.generate(*args)


def project(f):
    """
    :code:`project` accepts a generative function :code:`f` and returns a
    deterministic function of :code:`(trace, selection)` which computes the
    log density of the choices in :code:`trace` at the selected addresses.
    """
    return lambda *args: f.project(*args)
