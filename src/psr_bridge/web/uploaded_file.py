"""Uploaded files of the current request.

Files are parsed from the request form once and cached at class level;
the application calls :meth:`UploadedFile.reset` when a request ends so
the next request on the same worker starts empty.
"""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING, ClassVar

from starlette.datastructures import UploadFile

if TYPE_CHECKING:
    from .request import Request


class UploadedFile:
    """One uploaded file."""

    _files: ClassVar[dict[str, list[UploadedFile]] | None] = None

    def __init__(self, field_name: str, upload: UploadFile) -> None:
        self.field_name = field_name
        self.upload = upload

    @property
    def name(self) -> str | None:
        return self.upload.filename

    @property
    def type(self) -> str | None:
        return self.upload.content_type

    @property
    def size(self) -> int | None:
        return self.upload.size

    async def read(self) -> bytes:
        return await self.upload.read()

    async def save_as(self, path: str) -> None:
        await self.upload.seek(0)
        with open(path, "wb") as target:
            shutil.copyfileobj(self.upload.file, target)

    @classmethod
    async def _load(cls, request: Request) -> dict[str, list[UploadedFile]]:
        if cls._files is None:
            files: dict[str, list[UploadedFile]] = {}
            form = await request.get_psr7_request().form()
            for key, value in form.multi_items():
                if isinstance(value, UploadFile):
                    files.setdefault(key, []).append(cls(key, value))
            cls._files = files
        return cls._files

    @classmethod
    async def get_instances_by_name(cls, request: Request, name: str) -> list[UploadedFile]:
        return list((await cls._load(request)).get(name, []))

    @classmethod
    async def get_instance_by_name(cls, request: Request, name: str) -> UploadedFile | None:
        files = await cls.get_instances_by_name(request, name)
        return files[0] if files else None

    @classmethod
    def reset(cls) -> None:
        cls._files = None
