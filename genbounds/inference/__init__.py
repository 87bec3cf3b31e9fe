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

from .datatypes import (
    BoundEstimate,
    BoundKind,
    ExactConditionalTrace,
    ImportanceSample,
)
from .importance import (
    ImportanceEstimator,
    estimate_lower_bound,
    importance_sampling,
    multinomial_resampling,
    resample,
)
from .upper_bound import StochasticUpperBoundEstimator, estimate_upper_bound
from .sandwich import (
    SandwichConfig,
    SandwichEvaluator,
    SandwichReport,
    SandwichResult,
    evaluate,
    kl_gap,
)
from .vi import ParameterStore, VariationalInference, elbo
