"""Reporters for generating the attribution notice."""

from nuget_attributions.reporters.base import BaseReporter
from nuget_attributions.reporters.text import TextReporter

__all__ = ["BaseReporter", "TextReporter"]
