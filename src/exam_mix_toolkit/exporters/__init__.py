"""答案表导出器注册表"""
from __future__ import annotations
import importlib
import pkgutil

_EXPORTERS: dict[str, type] = {}


def register(name: str):
    def decorator(cls):
        _EXPORTERS[name] = cls
        cls.format_name = name
        return cls
    return decorator


def discover() -> None:
    """导入本包下所有 *_exporter 模块，触发 @register"""
    for info in pkgutil.iter_modules(__path__):
        if info.name.endswith("_exporter"):
            importlib.import_module(f"{__name__}.{info.name}")


def get_exporter(name: str):
    discover()
    if name not in _EXPORTERS:
        raise KeyError(f"未知导出格式: {name}，可选: {available()}")
    return _EXPORTERS[name]()


def available() -> list[str]:
    discover()
    return sorted(_EXPORTERS)
