"""Description templates, validated once when configuration loads.

Templates use ``str.format`` syntax and may reference the release fields only:

    New {project} release {version} reported by {provider}.
"""

from collections.abc import Iterator
from string import Formatter

from jelease.errors import TemplateError
from jelease.models import ReleaseEvent

FIELDS = ("provider", "project", "version")

DEFAULT_DESCRIPTION = (
    "Update issue generated by jelease using newreleases.io.\n\n"
    "Provider: {provider}\n"
    "Project: {project}\n"
    "Version: {version}"
)

_SAMPLE = {"provider": "github", "project": "example/project", "version": "1.0.0"}


def _field_names(source: str) -> Iterator[tuple[str, str | None]]:
    for _literal, field_name, format_spec, conversion in Formatter().parse(source):
        if field_name is None:
            continue
        yield field_name, conversion
        # nested replacement fields inside a format spec, e.g. {version:>{width}}
        if format_spec:
            yield from _field_names(format_spec)


class DescriptionTemplate:
    def __init__(self, source: str) -> None:
        self.source = source
        self._validate()

    def _validate(self) -> None:
        try:
            fields = list(_field_names(self.source))
        except ValueError as exc:
            raise TemplateError(f"Malformed description template: {exc}") from exc

        for name, conversion in fields:
            if name == "" or name.isdigit():
                raise TemplateError("Positional fields are not supported in description templates")
            if name not in FIELDS:
                raise TemplateError(f"Unknown field '{{{name}}}' in description template. Valid: {', '.join(FIELDS)}")
            if conversion not in (None, "s", "r", "a"):
                raise TemplateError(f"Invalid conversion '!{conversion}' in description template")

        # Catches format specs that do not apply to strings, e.g. {version:d}
        try:
            self.source.format_map(_SAMPLE)
        except (ValueError, KeyError, IndexError) as exc:
            raise TemplateError(f"Description template cannot be rendered: {exc}") from exc

    def render(self, event: ReleaseEvent) -> str:
        return self.source.format_map(
            {"provider": event.provider, "project": event.project, "version": event.version}
        )

    def __str__(self) -> str:
        return self.source

    def __repr__(self) -> str:
        return f"DescriptionTemplate({self.source!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DescriptionTemplate) and other.source == self.source

    def __hash__(self) -> int:
        return hash(self.source)
