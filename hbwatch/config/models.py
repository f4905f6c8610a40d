from pathlib import Path
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Flags owned by the dispatcher; the encoder argument list must not repeat them.
RESERVED_ENCODER_FLAGS = {"--input", "-i", "--output", "-o"}

DEFAULT_TRANSCODING = [
    "--encoder", "x265",
    "--encoder-preset", "medium",
    "--quality", "20",
    "--all-audio",
    "--aencoder", "copy",
    "--all-subtitles",
]


class WatcherConfig(BaseModel):
    """Service configuration. Loaded once at startup, read-only afterwards."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    input_path: Path
    input_file: List[str] = Field(default_factory=lambda: ["m4v", "mp4", "mkv"])
    output_path: Path
    move_path: Optional[Path] = None
    log_output: Optional[Path] = None
    handbrake_log: Optional[Path] = None
    progress_output: Optional[Path] = None
    loop_timeout: int = Field(default=900000, ge=0)  # ms
    change_timeout: int = Field(default=15000, ge=0)  # ms
    concurrent: int = Field(default=1, gt=0)
    handbrake_cli: str = "/usr/bin/HandBrakeCLI"
    transcoding: List[str] = Field(default_factory=lambda: list(DEFAULT_TRANSCODING))
    stability_metric: Literal["blocks", "size", "mtime"] = "blocks"
    terminate_timeout: float = Field(default=5.0, gt=0)  # seconds
    debug: bool = False

    @field_validator("input_path", "output_path", "move_path", "log_output", "handbrake_log", "progress_output", mode="before")
    @classmethod
    def expand_home(cls, v):
        if v is None or v == "":
            return None
        return Path(str(v)).expanduser()

    @field_validator("input_file")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        exts = [ext.strip().lstrip(".").lower() for ext in v if ext and ext.strip().lstrip(".")]
        if not exts:
            raise ValueError("input_file must list at least one extension")
        return exts

    @field_validator("transcoding")
    @classmethod
    def reject_io_flags(cls, v: List[str]) -> List[str]:
        for arg in v:
            flag = arg.split("=", 1)[0]
            if flag in RESERVED_ENCODER_FLAGS:
                raise ValueError(f"transcoding must not contain {flag}; input and output are set per job")
        return v

    @model_validator(mode="after")
    def validate_paths(self):
        # Outputs or moved sources in the input root would overwrite or re-queue sources
        input_root = self.input_path.resolve()
        if self.output_path.resolve() == input_root:
            raise ValueError("output_path must differ from input_path")
        if self.move_path is not None and self.move_path.resolve() == input_root:
            raise ValueError("move_path must differ from input_path")
        return self

    @property
    def loop_timeout_s(self) -> float:
        return self.loop_timeout / 1000.0

    @property
    def change_timeout_s(self) -> float:
        return self.change_timeout / 1000.0
