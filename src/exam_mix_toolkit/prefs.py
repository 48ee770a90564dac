"""持久化用户偏好：上次使用的试卷头配置与下一个起始编号"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from exam_mix_toolkit.config import DEFAULT_START_CODE, ExamHeaderConfig

logger = logging.getLogger(__name__)

HEADER_KEY = "mathmixer_header_config"
NEXT_CODE_KEY = "mathmixer_next_code"
DEFAULT_PREFS_PATH = Path.home() / ".exam_mix" / "prefs.json"


class PreferenceStore:

    def __init__(self, path: Path | str = DEFAULT_PREFS_PATH) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] = {}

    # ── 加载 ────────────────────────────────────────────
    def load(self) -> "PreferenceStore":
        if not self.path.exists():
            logger.debug("偏好文件不存在，使用默认值: %s", self.path)
            self._data = {}
            return self

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self._data = raw if isinstance(raw, dict) else {}
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("偏好文件损坏，忽略: %s (%s)", self.path, exc)
            self._data = {}
        return self

    # ── 读取 ────────────────────────────────────────────
    @property
    def header(self) -> ExamHeaderConfig:
        return ExamHeaderConfig.from_dict(self.saved_header)

    @property
    def saved_header(self) -> dict[str, Any]:
        """已保存的试卷头原始字段，未保存时为空字典"""
        raw = self._data.get(HEADER_KEY)
        return dict(raw) if isinstance(raw, dict) else {}

    @property
    def saved_next_code(self) -> int | None:
        try:
            return int(self._data[NEXT_CODE_KEY])
        except (KeyError, TypeError, ValueError):
            return None

    @property
    def next_code(self) -> int:
        saved = self.saved_next_code
        return DEFAULT_START_CODE if saved is None else saved

    def as_dict(self) -> dict[str, Any]:
        return {
            HEADER_KEY: self.header.to_dict(),
            NEXT_CODE_KEY: self.next_code,
        }

    # ── 写入 ────────────────────────────────────────────
    def save_header(self, header: ExamHeaderConfig) -> None:
        self._data[HEADER_KEY] = header.to_dict()
        self._flush()

    def save_next_code(self, code: int) -> None:
        self._data[NEXT_CODE_KEY] = int(code)
        self._flush()

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("偏好文件已清除: %s", self.path)
        self._data = {}

    # ── 私有：原子写盘 ───────────────────────────────────
    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # 在同一目录写临时文件，保证 rename 是原子操作
        fd, tmp_path = tempfile.mkstemp(
            dir    = self.path.parent,
            prefix = f".{self.path.stem}_",
            suffix = ".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            # 写盘失败只记日志
            logger.exception("偏好写盘失败: %s", self.path)
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
