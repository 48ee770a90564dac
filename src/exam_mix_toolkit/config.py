"""混合配置与试卷头配置"""
from __future__ import annotations
from dataclasses import asdict, dataclass, fields
from pathlib import Path
import yaml

DEFAULT_START_CODE = 101
DEFAULT_COUNT = 4


@dataclass
class MixOptions:
    shuffle_questions: bool = True
    shuffle_options: bool = True


@dataclass(frozen=True)
class ExamHeaderConfig:
    enabled: bool = False
    school_name: str = "TRƯỜNG THPT ........."
    sub_name: str = "TỔ TOÁN - TIN"
    exam_title: str = "ĐỀ KIỂM TRA ........."
    subject: str = "MÔN: TOÁN 12"
    time: str = "Thời gian: 90 phút"
    year: str = "Năm học 2024 - 2025"
    footer_text: str = "Giáo viên: ........."

    @classmethod
    def from_dict(cls, raw: dict | None, **overrides) -> "ExamHeaderConfig":
        """未知键忽略；overrides 中为 None 的值不覆盖"""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in (raw or {}).items() if k in known}
        data.update({k: v for k, v in overrides.items() if v is not None and k in known})
        return cls(**data)

    def to_dict(self) -> dict:
        return asdict(self)


def load_config(config_path: str | Path) -> dict:
    """读取 config.yaml，不存在时返回空字典"""
    p = Path(config_path)
    if p.exists():
        return yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    return {}
