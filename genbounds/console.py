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
import logging
import rich
from dataclasses import dataclass
from genbounds.inference.sandwich import SandwichReport
from rich import pretty as rich_pretty
from rich import traceback
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from typing import Dict

###################
# Pretty printing #
###################


@dataclass
class GenBoundsConsole:
    rich_console: Console
    traceback_kwargs: Dict

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        if exc_type is not None:
            trace = traceback.Traceback.extract(
                exc_type,
                exc_value,
                tb,
                show_locals=self.traceback_kwargs["show_locals"],
            )
            rich_tb = traceback.Traceback(trace, **self.traceback_kwargs)
            self.rich_console.print(rich_tb)
        return False

    def print(self, obj):
        self.rich_console.print(
            obj,
            soft_wrap=True,
            overflow="ellipsis",
        )

    def render(self, obj):
        console = Console(soft_wrap=True)
        with console.capture() as capture:
            console.print(
                obj,
                soft_wrap=True,
                overflow="ellipsis",
            )
        return capture.get()

    def inspect(self, obj, **kwargs):
        rich.inspect(obj, console=self.rich_console, **kwargs)


def report_table(report: SandwichReport) -> Table:
    table = Table(title=f"Sandwich ({report.num_particles} particles)")
    table.add_column("statistic", style="bold")
    table.add_column("value", justify="right")
    table.add_row("trials", str(report.num_trials))
    table.add_row("mean lower", f"{report.mean_lower:.4f}")
    table.add_row("mean upper", f"{report.mean_upper:.4f}")
    table.add_row("mean gap", f"{report.mean_gap:.4f}")
    table.add_row("crossed", str(report.num_crossed))
    if report.kl_gaps is not None:
        table.add_row("mean KL gap", f"{report.mean_kl_gap:.4f}")
    return table


def render_report(report: SandwichReport, console: GenBoundsConsole = None):
    if console is None:
        console = pretty(install=False)
    console.print(report_table(report))


def pretty(install=True, level=logging.INFO, **kwargs):
    """
    Returns a :code:`GenBoundsConsole`. With :code:`install=True`, also
    installs :code:`rich` pretty printing, :code:`rich` tracebacks with
    :code:`jax` frames suppressed, and a :code:`RichHandler` on the
    :code:`genbounds` logger.
    """
    traceback_kwargs = {
        "word_wrap": True,
        "show_locals": False,
        "max_frames": 30,
        "suppress": [jax],
        **kwargs,
    }
    rich_console = Console(soft_wrap=True)
    if install:
        rich_pretty.install(console=rich_console)
        traceback.install(console=rich_console, **traceback_kwargs)
        logger = logging.getLogger("genbounds")
        if not any(isinstance(h, RichHandler) for h in logger.handlers):
            logger.addHandler(RichHandler(console=rich_console))
        logger.setLevel(level)
    return GenBoundsConsole(rich_console, traceback_kwargs)
