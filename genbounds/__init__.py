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
`genbounds` sandwiches the log marginal likelihood `log p(x)` of a
generative model between a stochastic lower bound and a stochastic upper
bound, to measure how far a variational approximation is from the true
posterior. It is built on [JAX](https://github.com/google/jax): models,
traces and estimates are pytrees, particles are batched with `jax.vmap`,
and every reduction over weights runs in the log domain.

## High-level

- Models are generative functions written with `@gen` and `trace`, or any
  object implementing the generative function interface.

  | Interface     | Semantics (informal)                                                         |
  | ------------- | ---------------------------------------------------------------------------- |
  | `simulate`    | Sample every choice from the model's joint distribution                      |
  | `generate`    | Sample latents from the proposal with observations held fixed, and weight    |
  | `project`     | Log density of the choices of a trace at the selected addresses              |

- `estimate_lower_bound` (importance sampling) and `estimate_upper_bound`
  (importance sampling seeded with an exact posterior sample) satisfy
  Markov-inequality tail bounds for any number of particles.
- `SandwichEvaluator` runs both over observations simulated from the model.
"""

__version__ = "0.1.0"

# Public exports.
from .core import *
from .distributions import *
from .builtin import *
from .interface import *
from .inference import *
from .console import GenBoundsConsole, pretty, render_report, report_table
