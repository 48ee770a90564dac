"""源 .docx 包：校验、容错读取、为每份试卷克隆独立副本"""
from __future__ import annotations
import io
import logging
import zipfile
from pathlib import Path
from typing import BinaryIO

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from lxml import etree

logger = logging.getLogger(__name__)

MAIN_PART = "word/document.xml"


class FormatError(ValueError):
    """源文件结构无效（缺少主内容部件或 w:body），当前文档处理中止"""


class ExamPackage:
    """保存源文件字节；每次 open_document() 都得到一份互不共享的 Document"""

    def __init__(self, blob: bytes, name: str = "", warnings: list[str] | None = None):
        self.blob = blob
        self.name = name
        self.warnings = warnings or []

    @classmethod
    def load(cls, source: str | Path | bytes | BinaryIO) -> "ExamPackage":
        if isinstance(source, (bytes, bytearray)):
            blob, name = bytes(source), ""
        elif isinstance(source, (str, Path)):
            path = Path(source)
            blob, name = path.read_bytes(), path.name
        else:
            blob, name = source.read(), getattr(source, "name", "")

        warnings: list[str] = []
        blob = _check_main_part(blob, name, warnings)
        return cls(blob, name, warnings)

    def open_document(self):
        try:
            return Document(io.BytesIO(self.blob))
        except (PackageNotFoundError, KeyError, ValueError) as e:
            raise FormatError(f"无法打开 {self.name or '文档'}: {e}") from e


def _check_main_part(blob: bytes, name: str, warnings: list[str]) -> bytes:
    """确认主内容部件与 w:body 存在；XML 损坏时尝试 recover 模式修复"""
    try:
        zf = zipfile.ZipFile(io.BytesIO(blob))
    except zipfile.BadZipFile as e:
        raise FormatError(f"{name or '文件'} 不是有效的 .docx 压缩包") from e

    with zf:
        if MAIN_PART not in zf.namelist():
            raise FormatError(f"找不到 {MAIN_PART}，.docx 文件无效")
        xml = zf.read(MAIN_PART)

        try:
            root = etree.fromstring(xml)
        except etree.XMLSyntaxError as e:
            msg = f"{MAIN_PART} 存在格式错误，已尽力修复: {e}"
            logger.warning(msg)
            warnings.append(msg)
            root = etree.fromstring(xml, etree.XMLParser(recover=True))
            if root is None:
                raise FormatError(f"{MAIN_PART} 无法解析") from e
            xml = etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=True)
            blob = _replace_part(zf, MAIN_PART, xml)

        if root.find(qn("w:body")) is None:
            raise FormatError(f"{MAIN_PART} 结构错误（缺少 w:body）")

    return blob


def _replace_part(zf: zipfile.ZipFile, part_name: str, data: bytes) -> bytes:
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as dst:
        for info in zf.infolist():
            payload = data if info.filename == part_name else zf.read(info.filename)
            dst.writestr(info, payload)
    return out.getvalue()
