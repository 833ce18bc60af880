from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRYING = "retrying"
    CANCELLED = "cancelled"


class ProgressStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorDetail(BaseModel):
    transcode_type: str
    stage: str  # download | transcode | upload
    error: str
    command: Optional[str] = None
    output: Optional[str] = None
    timestamp: Optional[datetime] = None


_COLLECTION_FIELDS = {"transcode_types", "progress", "output_files", "error_details"}


class Task(BaseModel):
    task_id: str
    status: TaskStatus
    input_bucket: str
    input_key: str
    output_bucket: str = ""
    transcode_types: List[str] = Field(default_factory=list)
    progress: Dict[str, ProgressStatus] = Field(default_factory=dict)
    output_files: Dict[str, str] = Field(default_factory=dict)
    retry_count: int = 0
    max_retries: int = 0
    error_message: Optional[str] = None
    error_details: List[ErrorDetail] = Field(default_factory=list)
    date_partition: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _nulls_to_empty(cls, data):
        # the backend serialises empty maps and lists as null
        if not isinstance(data, dict):
            return data
        return {k: v for k, v in data.items() if not (v is None and k in _COLLECTION_FIELDS)}

    @property
    def consistent(self) -> bool:
        """False while the backend is between writing an output file and marking its type done."""
        if set(self.progress) - set(self.transcode_types):
            return False
        completed = {k for k, v in self.progress.items() if v == ProgressStatus.COMPLETED}
        return set(self.output_files) <= completed

    def progress_summary(self) -> str:
        if not self.progress:
            return "-"
        done = sum(1 for v in self.progress.values() if v == ProgressStatus.COMPLETED)
        return f"{done}/{len(self.progress)}"


class TaskPage(BaseModel):
    tasks: List[Task] = Field(default_factory=list)
    total: int = 0
    limit: Optional[int] = None
    offset: Optional[int] = None


class SubmitRequest(BaseModel):
    input_bucket: str
    input_key: str
    transcode_types: List[str]


class SubmitResponse(BaseModel):
    task_id: str


class CommandAck(BaseModel):
    message: str = ""
    task_id: Optional[str] = None


class QueueStatus(BaseModel):
    approximate_number_of_messages: int = 0
    approximate_number_of_messages_not_visible: int = 0


class Preset(BaseModel):
    preset_id: str
    name: str
    description: str = ""
    ffmpeg_args: List[str] = Field(default_factory=list)
    output_ext: str
    platform: Optional[str] = None
    is_builtin: bool = False


class PresetCreate(BaseModel):
    name: str
    description: str = ""
    ffmpeg_args: List[str]
    output_ext: str


class TestOutcome(BaseModel):
    __test__ = False  # not a pytest test class

    success: bool
    command: str = ""
    output: str = ""
    error: Optional[str] = None
    retries: int = 0


class AIResult(BaseModel):
    name: str = ""
    description: str = ""
    output_ext: str
    ffmpeg_args: List[str]
    explanation: str = ""
    estimated_speed: str = ""
    platform: Optional[str] = None
    test_result: Optional[TestOutcome] = None


class GenerateRequest(BaseModel):
    requirement: str
    input_format: str = ""
    auto_test: bool = False


class TestRequest(BaseModel):
    __test__ = False

    input_file: str
    ffmpeg_args: List[str]
    output_ext: str


class FixRequest(BaseModel):
    requirement: str
    input_format: str = ""
    failed_args: List[str]
    output_ext: str
    error_message: str
    ffmpeg_output: str = ""


class FixResult(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    ffmpeg_args: List[str]
    output_ext: Optional[str] = None
    explanation: str = ""


class SystemConfig(BaseModel):
    input_bucket: str = ""
    output_bucket: str = ""


class HealthStatus(BaseModel):
    status: str

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"


class PlatformInfo(BaseModel):
    platform: str = ""
    gpu_available: bool = False
    video_encoder: str = ""


class User(BaseModel):
    username: str
    role: str = "user"  # admin | user
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class LoginResult(BaseModel):
    token: str
    username: str
    role: str
