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
import genbounds
import pytest


class TestChoiceMaps:
    def test_new_normalizes_addresses(self):
        chm = genbounds.ChoiceMap.new({"x": 1.0, ("sub", "y"): 2.0})
        assert chm.has_choice("x")
        assert chm.has_choice(("x",))
        assert chm["sub", "y"] == 2.0
        assert len(chm) == 2
        assert ("sub", "y") in chm
        assert "y" not in chm

    def test_duplicate_addresses(self):
        with pytest.raises(ValueError):
            genbounds.ChoiceMap.new({"x": 1.0, ("x",): 2.0})

    def test_missing_address(self):
        chm = genbounds.ChoiceMap.new({"x": 1.0})
        with pytest.raises(KeyError):
            chm["y"]

    def test_submap_and_prefix(self):
        chm = genbounds.ChoiceMap.new(
            {("sub", "x"): 1.0, ("sub", "y"): 2.0, "z": 3.0}
        )
        sub = chm.get_submap("sub")
        assert set(sub.get_addresses()) == {("x",), ("y",)}
        assert sub["y"] == 2.0
        assert sub.prefix("sub")["sub", "x"] == 1.0
        assert chm.get_submap("w").is_empty()

    def test_value_choice_map(self):
        chm = genbounds.ChoiceMap.value(4.0)
        assert chm.has_value()
        assert chm.get_value() == 4.0
        assert chm.prefix("x")["x"] == 4.0

    def test_merge_is_right_biased(self):
        left = genbounds.ChoiceMap.new({"x": 1.0, "y": 2.0})
        right = genbounds.ChoiceMap.new({"y": 5.0, "z": 6.0})
        merged = left.merge(right)
        assert merged["x"] == 1.0
        assert merged["y"] == 5.0
        assert merged["z"] == 6.0
        assert len(merged) == 3

    def test_filter(self):
        chm = genbounds.ChoiceMap.new(
            {"x": 1.0, ("sub", "y"): 2.0, ("sub", "z"): 3.0}
        )
        filtered = chm.filter(genbounds.Selection(["sub"]))
        assert set(filtered.get_addresses()) == {("sub", "y"), ("sub", "z")}
        rest = chm.filter(genbounds.Selection(["sub"]).complement())
        assert rest.get_addresses() == (("x",),)

    def test_get_selection(self):
        chm = genbounds.ChoiceMap.new({"x": 1.0, ("sub", "y"): 2.0})
        selection = chm.get_selection()
        assert selection.has_addr("x")
        assert selection.has_addr(("sub", "y"))
        assert not selection.has_addr("y")

    def test_choice_map_is_pytree(self):
        chm = genbounds.ChoiceMap.new({"x": 1.0, "y": 2.0})
        doubled = jax.tree_util.tree_map(lambda v: 2 * v, chm)
        assert doubled["x"] == 2.0
        assert doubled["y"] == 4.0
        assert len(jax.tree_util.tree_leaves(chm)) == 2


class TestTreeStack:
    def test_stack_unstack(self):
        chms = [
            genbounds.ChoiceMap.new({"x": jnp.array(float(i))}) for i in range(3)
        ]
        stacked = genbounds.tree_stack(chms)
        assert stacked["x"].shape == (3,)
        unstacked = genbounds.tree_unstack(stacked)
        assert [float(c["x"]) for c in unstacked] == [0.0, 1.0, 2.0]
