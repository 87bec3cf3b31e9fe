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
JAX-specific utilities which let host-side checks run when values are
concrete, and step aside when a function is being traced (e.g. under
:code:`jax.jit` or :code:`jax.vmap`).
"""

import jax


def is_concrete(x):
    return not isinstance(x, jax.core.Tracer)
