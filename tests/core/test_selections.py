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

import genbounds
import jax


class TestSelections:
    def test_hierarchical_selection(self):
        s = genbounds.Selection(["x", ("z", "y")])
        assert s.has_addr(("x",))
        assert s.has_addr(("x", "w"))
        assert s.has_addr(("z", "y"))
        assert not s.has_addr(("z",))
        assert not s.has_addr(("y",))
        assert not s.has_addr(("z", "x"))
        assert "x" in s

    def test_subselection(self):
        s = genbounds.Selection(["x", ("z", "y")])
        assert isinstance(s.get_subselection("x"), genbounds.AllSelection)
        sub = s.get_subselection("z")
        assert sub.has_addr("y")
        assert not sub.has_addr("x")
        assert not s.get_subselection("w").has_addr("y")

    def test_complement(self):
        s = genbounds.Selection(["x"])
        c = s.complement()
        assert not c.has_addr("x")
        assert c.has_addr("y")
        assert c.complement() == s
        assert not c.get_subselection("x").has_addr(())
        assert c.get_subselection("y").has_addr(())

    def test_all_and_none(self):
        assert genbounds.AllSelection().has_addr(("a", "b"))
        assert not genbounds.NoneSelection().has_addr(("a", "b"))
        assert isinstance(
            genbounds.AllSelection().complement(), genbounds.NoneSelection
        )

    def test_selection_equality(self):
        assert genbounds.Selection(["x"]) == genbounds.Selection([("x",)])
        assert genbounds.Selection(["x"]) != genbounds.Selection(["y"])

    def test_hierarchical_selection_filter(self):
        @genbounds.gen
        def simple_normal():
            y1 = genbounds.trace("y1", genbounds.normal)(0.0, 1.0)
            y2 = genbounds.trace("y2", genbounds.normal)(0.0, 1.0)
            return y1 + y2

        key = jax.random.PRNGKey(314159)
        tr = jax.jit(simple_normal.simulate)(key, ())
        selection = genbounds.Selection(["y1"])
        chm = tr.get_choices().filter(selection)
        assert chm["y1"] == tr["y1"]
        assert not chm.has_choice("y2")
