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

import os
import re

from setuptools import setup

# Specify the requirements.
requirements = {
    "genbounds": [
        "jax>=0.4.16,<0.4.36",
        "jaxlib>=0.4.16,<0.4.36",
        "numpy",
        "tensorflow-probability>=0.22",
        "optax",
        "rich",
    ],
    "test": [
        "pytest",
        "pytest-benchmark",
        "coverage",
    ],
}
requirements["all"] = [r for v in requirements.values() for r in v]

# Determine the version (hardcoded).
dirname = os.path.dirname(os.path.realpath(__file__))
vre = re.compile('__version__ = "(.*?)"')
m = open(os.path.join(dirname, "genbounds", "__init__.py")).read()
__version__ = vre.findall(m)[0]

setup(
    name="genbounds",
    version=__version__,
    description="Stochastic bounds on marginal likelihoods, in JAX",
    long_description=open(os.path.join(dirname, "README.md")).read(),
    long_description_content_type="text/markdown",
    license="Apache-2.0",
    classifiers=[
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
    packages=[
        "genbounds",
        "genbounds.core",
        "genbounds.builtin",
        "genbounds.distributions",
        "genbounds.distributions.tensorflow_probability",
        "genbounds.inference",
    ],
    install_requires=requirements["genbounds"],
    extras_require=requirements,
    python_requires=">=3.9",
)
