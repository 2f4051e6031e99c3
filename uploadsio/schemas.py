import enum
import os
import posixpath
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from .errors import ConstructionError


def rootname(name: str) -> str:
    return posixpath.splitext(name)[0]


def extname(name: str) -> str:
    return posixpath.splitext(name)[1].lower()


###########################################################
# File Schemas
###########################################################


class FileHandle(BaseModel):
    """
    A logical file: its name split into rootname + ext, an optional location of
    bytes on local disk, the scope used to compute storage directories,
    and the uploader that owns it.

    Handles are immutable.  Use replace() to derive a new one.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    rootname: str
    ext: str
    location: Optional[str] = None
    scope: Any = None
    uploader: Any = None

    @model_validator(mode="before")
    @classmethod
    def split_name(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        name = data.get("name")
        location = data.get("location")
        if location is not None:
            location = os.fspath(location)
        if name is None:
            if location is None:
                raise ConstructionError(
                    "Missing name or location when creating a new file"
                )
            name = os.path.basename(location)
        return {
            **data,
            "name": name,
            "rootname": rootname(name),
            "ext": extname(name),
            "location": location,
        }

    @classmethod
    def new(
        cls,
        location: Optional[str] = None,
        name: Optional[str] = None,
        scope: Any = None,
        uploader: Any = None,
    ) -> "FileHandle":
        if name is None and location is None:
            raise ConstructionError("Missing name or location when creating a new file")
        return cls(name=name, location=location, scope=scope, uploader=uploader)

    def replace(self, **changes) -> "FileHandle":
        """
        Return a copy with changes applied.  Changing one of name, rootname or ext
        recomputes the other two.
        """
        if "location" in changes and changes["location"] is not None:
            changes["location"] = os.fspath(changes["location"])
        if "name" in changes:
            name = changes.pop("name")
            changes.update(name=name, rootname=rootname(name), ext=extname(name))
        elif "rootname" in changes or "ext" in changes:
            root = changes.pop("rootname", self.rootname)
            ext = changes.pop("ext", self.ext).lower()
            changes.update(name=root + ext, rootname=root, ext=ext)
        return self.model_copy(update=changes)


###########################################################
# Outcome Schemas
###########################################################


class OutcomeStatus(str, enum.Enum):
    """
    STORED version bytes were written to storage
    NO_STORE the transform chose to skip the version
    DELETED version was removed from storage
    ERROR the version failed; reason says why
    """

    STORED = "stored"
    NO_STORE = "no_store"
    DELETED = "deleted"
    ERROR = "error"


class VersionOutcome(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: OutcomeStatus
    reason: Any = None

    @classmethod
    def stored(cls) -> "VersionOutcome":
        return cls(status=OutcomeStatus.STORED)

    @classmethod
    def no_store(cls) -> "VersionOutcome":
        return cls(status=OutcomeStatus.NO_STORE)

    @classmethod
    def deleted(cls) -> "VersionOutcome":
        return cls(status=OutcomeStatus.DELETED)

    @classmethod
    def error(cls, reason: Any) -> "VersionOutcome":
        return cls(status=OutcomeStatus.ERROR, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.ERROR


class Report(BaseModel):
    """Every version reached by an operation, successes included"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    versions: Dict[str, VersionOutcome]

    @property
    def errors(self) -> Dict[str, Any]:
        return {
            version: outcome.reason
            for version, outcome in self.versions.items()
            if not outcome.ok
        }

    def summary(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "versions": {
                version: (
                    outcome.status.value
                    if outcome.ok
                    else {"error": str(outcome.reason)}
                )
                for version, outcome in self.versions.items()
            },
        }


###########################################################
# Transform Result Schemas
###########################################################


class TransformResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class Transformed(TransformResult):
    target: FileHandle


class TransformedWithChildren(TransformResult):
    """Store target, then derive each of versions from target instead of the original"""

    target: FileHandle
    versions: List[str]


class Skipped(TransformResult):
    pass


class Failed(TransformResult):
    reason: Any = None
