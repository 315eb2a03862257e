"""Rewriting of legacy package references inside jar/aar archives.

Class files are patched at the constant pool level: every CONSTANT_Utf8
entry is rewritten and its length prefix corrected; the remainder of the
class file is copied as-is. Archive entry order and metadata are kept so
the output is stable for identical input.
"""
from __future__ import annotations

import io
import logging
import struct
import zipfile
from typing import Optional, Protocol

from depfetch.common.logging_utils import extra_context, is_debug_enabled
from depfetch.jetifier.mapping import JetifierMapping

logger = logging.getLogger(__name__)

_CLASS_MAGIC = b"\xca\xfe\xba\xbe"
_TEXT_SUFFIXES = (".xml", ".pro", ".txt", ".mf", ".properties", ".json")

# Constant pool tag -> payload size in bytes (CONSTANT_Utf8 is variable).
_FIXED_SIZES = {
    3: 4, 4: 4,
    5: 8, 6: 8,
    7: 2, 8: 2, 16: 2, 19: 2, 20: 2,
    9: 4, 10: 4, 11: 4, 12: 4, 17: 4, 18: 4,
    15: 3,
}
_WIDE_TAGS = (5, 6)
_UTF8 = 1


class ReferenceRewriter(Protocol):  # pylint: disable=too-few-public-methods
    """Rewrites legacy references inside an artifact's bytes."""

    def rewrite_internal_references(self, data: bytes, mapping: JetifierMapping) -> bytes:
        ...


def rewrite_class_file(data: bytes, mapping: JetifierMapping) -> bytes:
    """Rewrite CONSTANT_Utf8 entries of a class file.

    Returns the input unchanged when it is not a class file, when an
    unknown constant pool tag is met, or when nothing changed.
    """
    if len(data) < 10 or data[:4] != _CLASS_MAGIC:
        return data
    (count,) = struct.unpack_from(">H", data, 8)
    out = bytearray(data[:10])
    pos = 10
    index = 1
    changed = False
    try:
        while index < count:
            tag = data[pos]
            if tag == _UTF8:
                (length,) = struct.unpack_from(">H", data, pos + 1)
                value = data[pos + 3:pos + 3 + length]
                rewritten = mapping.rewrite_binary_name(value)
                if rewritten != value and len(rewritten) <= 0xFFFF:
                    changed = True
                    value = rewritten
                out.append(_UTF8)
                out += struct.pack(">H", len(value))
                out += value
                pos += 3 + length
                index += 1
                continue
            size = _FIXED_SIZES.get(tag)
            if size is None:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Unknown constant pool tag",
                        extra=extra_context(
                            event="anomaly",
                            component="rewriter",
                            action="rewrite_class",
                            outcome=f"tag_{tag}",
                        ),
                    )
                return data
            out += data[pos:pos + 1 + size]
            pos += 1 + size
            index += 2 if tag in _WIDE_TAGS else 1
    except (IndexError, struct.error):
        logger.warning("Truncated class file; leaving it unchanged")
        return data
    if not changed:
        return data
    out += data[pos:]
    return bytes(out)


class ArchiveReferenceRewriter:
    """Rewrites class, text and nested jar entries of a zip archive."""

    def rewrite_internal_references(self, data: bytes, mapping: JetifierMapping) -> bytes:
        """Return ``data`` with legacy references replaced.

        Non-zip content is returned unchanged, as is an archive in which
        no entry changed.
        """
        if not data or not zipfile.is_zipfile(io.BytesIO(data)):
            return data
        try:
            return self._rewrite_archive(data, mapping)
        except zipfile.BadZipFile as exc:
            logger.warning("Unreadable archive left unchanged: %s", exc)
            return data

    def _rewrite_entry(self, name: str, payload: bytes, mapping: JetifierMapping) -> bytes:
        lowered = name.lower()
        if lowered.endswith(".class"):
            return rewrite_class_file(payload, mapping)
        if lowered.endswith(".jar"):
            return self.rewrite_internal_references(payload, mapping)
        if lowered.endswith(_TEXT_SUFFIXES):
            try:
                text = payload.decode("utf-8")
            except UnicodeDecodeError:
                return payload
            rewritten = mapping.rewrite_text(text)
            return payload if rewritten == text else rewritten.encode("utf-8")
        return payload

    def _rewrite_archive(self, data: bytes, mapping: JetifierMapping) -> bytes:
        changed = False
        buffer = io.BytesIO()
        with zipfile.ZipFile(io.BytesIO(data)) as source, zipfile.ZipFile(buffer, "w") as target:
            target.comment = source.comment
            for info in source.infolist():
                payload = source.read(info)
                rewritten: Optional[bytes] = None
                if not info.is_dir():
                    rewritten = self._rewrite_entry(info.filename, payload, mapping)
                if rewritten is not None and rewritten != payload:
                    changed = True
                    payload = rewritten
                target.writestr(info, payload)
        if not changed:
            return data
        return buffer.getvalue()
