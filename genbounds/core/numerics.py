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
Log-domain reductions over particle weights.

Every reduction over importance weights in :code:`genbounds` goes through
:code:`jax.scipy.special.logsumexp`; weights are never exponentiated and
summed directly.
"""

import jax.numpy as jnp
import numpy as np
from jax.scipy.special import logsumexp
from genbounds.core.errors import NonFiniteWeight
from genbounds.core.specialization import is_concrete


def check_log_weights(log_weights, allow_zero=True):
    """
    Raises :code:`NonFiniteWeight` if any weight is NaN or :code:`+inf`.

    :code:`-inf` is allowed: it is what a distribution's :code:`logpdf`
    returns for a value outside its support, so the model itself declares
    the event to have probability zero, and it contributes nothing to the
    log-sum-exp. With :code:`allow_zero=False`, :code:`-inf` is rejected too.
    Traced values (inside :code:`jax.jit`) are not checked.
    """
    if not is_concrete(log_weights):
        return log_weights
    arr = np.asarray(log_weights)
    bad = np.isnan(arr) | (arr == np.inf)
    if not allow_zero:
        bad = bad | (arr == -np.inf)
    if np.any(bad):
        raise NonFiniteWeight(arr, bad)
    return log_weights


def log_mean_exp(log_weights, axis=-1):
    n = log_weights.shape[axis]
    return logsumexp(log_weights, axis=axis) - jnp.log(n)


def log_normalize(log_weights):
    return log_weights - logsumexp(log_weights)


def effective_sample_size(log_weights):
    log_normalized = log_normalize(log_weights)
    return jnp.exp(-logsumexp(2.0 * log_normalized))
