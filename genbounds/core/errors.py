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
Exceptions raised by the modeling language and the estimators.

None of these are transient: each one is a contract violation by the
caller, so nothing in :code:`genbounds` retries after catching them.
"""

import numpy as np

__all__ = [
    "GenBoundsError",
    "InvalidObservation",
    "MissingExactSample",
    "NonFiniteWeight",
    "AddressReuse",
    "TraceOutsideHandler",
]


class GenBoundsError(Exception):
    pass


class InvalidObservation(GenBoundsError):
    """An observed choice was supplied at an address the model does not
    define."""

    def __init__(self, addresses):
        self.addresses = tuple(addresses)
        super().__init__(
            f"Observations at {list(self.addresses)} are not defined by the model."
        )


class MissingExactSample(GenBoundsError):
    """The upper bound estimator was invoked without an exact conditional
    sample."""

    def __init__(self, received=None, reason=None):
        self.received = received
        reason = reason or (
            "Stochastic upper bounds require an `ExactConditionalTrace` "
            f"(from `ExactConditionalTrace.simulate`), got {type(received).__name__}."
        )
        super().__init__(reason)


class NonFiniteWeight(GenBoundsError):
    """A particle log weight was NaN or +inf."""

    def __init__(self, log_weights, mask=None):
        log_weights = np.asarray(log_weights)
        if mask is None:
            mask = ~np.isfinite(log_weights)
        self.log_weights = log_weights
        self.indices = tuple(int(i) for i in np.flatnonzero(mask))
        super().__init__(
            f"Non-finite log weights at particle indices {list(self.indices)}."
        )


class AddressReuse(GenBoundsError):
    """An address was traced more than once in a single execution."""

    def __init__(self, addr):
        self.addr = addr
        super().__init__(f"Address {addr} was visited more than once.")


class TraceOutsideHandler(GenBoundsError):
    def __init__(self, addr):
        self.addr = addr
        super().__init__(
            f"`trace` at {addr} was called outside of a generative function "
            "interface method (use `simulate` or `generate`)."
        )
