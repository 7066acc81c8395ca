"""Record and label dataclasses shared by every pipeline stage."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class LogRecord:
    timestamp: datetime
    type: str
    source_file: str = ""
    raw_content: str | None = ""
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def session_key(self) -> str:
        return self.timestamp.isoformat()

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the JSON shape written to the sessions file.

        Raw content only appears when no parser consumed it.
        """
        data = {
            "timestamp": self.session_key,
            "type": self.type,
            "source_file": self.source_file,
        }
        data.update(self.fields)
        if self.raw_content is not None:
            data["content"] = self.raw_content
        return data


@dataclass(frozen=True)
class Label:
    type: str
    ref: str | None
    label: str
    spendable: bool | None = None


def label_to_dict(label: Label) -> dict[str, Any]:
    """Convert a Label to a dict, dropping spendable when unset."""
    data = {"type": label.type, "ref": label.ref, "label": label.label}
    if label.spendable is not None:
        data["spendable"] = label.spendable
    return data
