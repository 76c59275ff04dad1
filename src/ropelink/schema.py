from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator

if TYPE_CHECKING:
    from ropelink.operations import RefactorOperations


class ResourceKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class ProjectResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    kind: ResourceKind = ResourceKind.FILE

    @model_validator(mode="before")
    @classmethod
    def _from_engine(cls, value: Any) -> Any:
        if isinstance(value, str):
            if value.endswith("/") and value.strip("/"):
                return {"path": value.rstrip("/"), "kind": ResourceKind.DIRECTORY}
            return {"path": value}
        if isinstance(value, dict) and "kind" not in value and "is_folder" in value:
            payload = {key: item for key, item in value.items() if key != "is_folder"}
            payload["kind"] = ResourceKind.DIRECTORY if value["is_folder"] else ResourceKind.FILE
            return payload
        return value

    @property
    def is_directory(self) -> bool:
        return self.kind is ResourceKind.DIRECTORY

    @property
    def name(self) -> str:
        return Path(self.path).name

    def resolved(self, root: Path) -> "ProjectResource":
        path = Path(self.path)
        if path.is_absolute():
            return self
        return self.model_copy(update={"path": str(root / path)})

    def children(self, operations: "RefactorOperations") -> List["ProjectResource"]:
        """Fetch this directory's children; always a fresh engine query."""
        if not self.is_directory:
            return []
        return operations.get_children(self.path)


class CodeAssistProposal(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    documentation: Optional[str] = None
    scope: Optional[str] = None
    type: Optional[str] = None
