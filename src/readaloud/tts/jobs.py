"""
Value types for long-audio jobs and their artifacts.

These are plain dataclasses shared by the server (provider, storage,
service) and the client (API client, poller); nothing here touches the
network.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"

TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_ERROR)

UNKNOWN_JOB_ERROR = "Unknown error occurred"


@dataclass(frozen=True)
class SynthesisJob:
    """
    Handle for an in-flight long-audio job.

    Attributes:
        operation_name: Provider operation name, used to poll.
        output_file_name: Artifact name the provider will write.
    """
    operation_name: str
    output_file_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operationName": self.operation_name,
            "outputFileName": self.output_file_name,
            "isLongAudio": True,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SynthesisJob":
        return cls(
            operation_name=str(data["operationName"]),
            output_file_name=str(data["outputFileName"]),
        )


@dataclass
class JobStatus:
    """
    One answer to "is job X done?".

    Exactly one of progress/result/error is meaningful, depending on
    ``status``. ``progress`` may be None when the provider reports none.
    """
    status: str
    progress: Optional[float] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def processing(cls, progress: Optional[float] = None) -> "JobStatus":
        return cls(status=STATUS_PROCESSING, progress=progress)

    @classmethod
    def completed(cls, result: Optional[Dict[str, Any]] = None) -> "JobStatus":
        return cls(status=STATUS_COMPLETED, progress=100.0, result=result or {})

    @classmethod
    def failed(cls, message: Optional[str]) -> "JobStatus":
        return cls(status=STATUS_ERROR, error=message or UNKNOWN_JOB_ERROR)

    def to_dict(self) -> Dict[str, Any]:
        """Wire form returned by the status endpoint."""
        if self.status == STATUS_COMPLETED:
            return {"status": self.status, "result": self.result or {}}
        if self.status == STATUS_ERROR:
            return {"status": self.status, "error": self.error or UNKNOWN_JOB_ERROR}
        return {"status": self.status, "progress": self.progress if self.progress is not None else 0}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobStatus":
        status = str(data.get("status", ""))
        if status == STATUS_COMPLETED:
            return cls.completed(data.get("result"))
        if status == STATUS_ERROR:
            return cls.failed(data.get("error"))
        progress = data.get("progress")
        return cls.processing(float(progress) if progress is not None else None)


@dataclass(frozen=True)
class CleanupOutcome:
    """Result of deleting an artifact after download: ok, or failed with a reason."""
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls) -> "CleanupOutcome":
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str) -> "CleanupOutcome":
        return cls(ok=False, reason=reason)

    @property
    def label(self) -> str:
        return "ok" if self.ok else "failed"


@dataclass
class RetrievalResult:
    """Downloaded artifact plus what happened when we tried to delete it."""
    payload: bytes
    content_type: str
    file_name: str
    cleanup: CleanupOutcome = field(default_factory=CleanupOutcome.succeeded)
