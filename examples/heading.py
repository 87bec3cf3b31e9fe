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

import jax
import jax.numpy as jnp
import optax
import genbounds

# Sandwiching log p(heading) for a 2D position observed only through a
# noisy heading, then measuring how far an amortized variational guide is
# from the posterior.

console = genbounds.pretty()


@genbounds.gen
def model():
    x = genbounds.trace("x", genbounds.normal)(1.0, 1.0)
    y = genbounds.trace("y", genbounds.normal)(0.0, 1.0)
    genbounds.trace("heading", genbounds.von_mises)(jnp.arctan2(y, x), 50.0)
    return x, y


# The guide proposes a point at distance `r` along the observed heading.
@genbounds.gen
def guide(params, heading):
    r = jnp.exp(params["log_r"])
    scale = jnp.exp(params["log_scale"])
    genbounds.trace("x", genbounds.normal)(r * jnp.cos(heading), scale)
    genbounds.trace("y", genbounds.normal)(r * jnp.sin(heading), scale)


key = jax.random.PRNGKey(314159)
selection = genbounds.Selection(["heading"])

#####
# Sandwich
#####

for num_particles in [10, 1000]:
    key, sub_key = jax.random.split(key)
    results = genbounds.evaluate(
        sub_key,
        model,
        (),
        selection,
        num_particles=num_particles,
        num_trials=200,
    )
    report = genbounds.SandwichReport.from_results(results)
    genbounds.render_report(report, console)

#####
# Variational inference
#####

observations = genbounds.ChoiceMap.new({"heading": 0.3})
vi = genbounds.VariationalInference(model, guide, optax.adam(1e-2), num_samples=16)
params = genbounds.ParameterStore.new({"log_r": 0.0, "log_scale": 0.0})
key, sub_key = jax.random.split(key)
params, history = vi.fit(sub_key, params, (), observations, 1000, (0.3,))
console.print(params.as_dict())


def guide_elbo(key, observation):
    heading = observation["heading"]
    return vi.elbo(key, params, (), observation, (heading,))


key, sub_key = jax.random.split(key)
results = genbounds.evaluate(
    sub_key, model, (), selection, num_particles=1000, num_trials=200
)
elbo_keys = jax.random.split(key, len(results))
elbos = [guide_elbo(k, r.observation) for (k, r) in zip(elbo_keys, results)]
report = genbounds.SandwichReport.from_results(results, elbos=elbos)
genbounds.render_report(report, console)
