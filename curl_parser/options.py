from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class ParsingOptions:
    max_upload_files: int = 10

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "ParsingOptions":
        return cls(max_upload_files=int(config.get("MAX_UPLOAD_FILES", cls.max_upload_files)))
