"""Renders metric families into the Prometheus text exposition format."""
from typing import Iterable, List

from .models import MetricFamily, Sample, format_value


class TextFormatRenderer:
    def __init__(self, omit_empty_help: bool = False):
        self.omit_empty_help = omit_empty_help

    def render(self, families: Iterable[MetricFamily]) -> str:
        """Render families in the given order; the result always ends with a newline."""
        lines: List[str] = []
        for family in families:
            if family.help or not self.omit_empty_help:
                lines.append(f"# HELP {family.name} {family.help}")
            # untyped families come from hand-written files without a TYPE line
            if family.type:
                lines.append(f"# TYPE {family.name} {family.type}")
            for sample in family:
                lines.append(self.render_sample(family, sample))
        return "".join(line + "\n" for line in lines) or "\n"

    @staticmethod
    def render_sample(family: MetricFamily, sample: Sample) -> str:
        names = family.label_names_for(sample)
        if not names:
            return f"{sample.name} {format_value(sample.value)}"
        labels = ",".join(f'{n}="{v}"' for n, v in zip(names, sample.label_values))
        return f"{sample.name}{{{labels}}} {format_value(sample.value)}"
