"""Jinja2 templates bundled with nuget_attributions."""
