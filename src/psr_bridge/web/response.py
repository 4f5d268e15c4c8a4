"""Framework response component convertible to a Starlette response.

The framework fills ``status_code``, ``headers``, ``data``/``content`` or a
file ``stream``; :meth:`Response.get_psr7_response` turns that state into
the Starlette response handed back to the server. Responses produced by
middleware can be adopted verbatim with :meth:`Response.with_psr7_response`.
"""

from __future__ import annotations

import mimetypes
import os
from collections.abc import Iterator
from typing import IO, Any, ClassVar
from urllib.parse import quote

from starlette.datastructures import MutableHeaders
from starlette.responses import JSONResponse, StreamingResponse
from starlette.responses import Response as StarletteResponse

from ..base.component import Component
from ..constants import FILE_CHUNK_SIZE
from ..exceptions import ServerErrorHttpException


class FileStream:
    """Message body over a binary file handle.

    Iterating yields the remaining content in chunks and closes the handle
    once it is exhausted, which is what ``StreamingResponse`` expects.
    """

    def __init__(self, handle: IO[bytes], chunk_size: int = FILE_CHUNK_SIZE) -> None:
        self.handle = handle
        self.chunk_size = chunk_size

    @property
    def closed(self) -> bool:
        return self.handle.closed

    def get_size(self) -> int | None:
        """Bytes left between the current position and the end, if known."""
        try:
            if not self.handle.seekable():
                return None
            position = self.handle.tell()
            end = self.handle.seek(0, os.SEEK_END)
            self.handle.seek(position)
        except (OSError, ValueError):
            return None
        return end - position

    def read(self, size: int = -1) -> bytes:
        return self.handle.read(size)

    def close(self) -> None:
        if not self.handle.closed:
            self.handle.close()

    def __iter__(self) -> Iterator[bytes]:
        try:
            while chunk := self.handle.read(self.chunk_size):
                yield chunk
        finally:
            self.close()


class Response(Component):
    """Mutable framework response.

    Usage:
        response = app.get_response()
        response.format = Response.FORMAT_JSON
        response.data = {"ok": True}
        starlette_response = response.get_psr7_response()

        # File downloads
        response.send_file("/var/reports/q3.pdf", "report.pdf")
    """

    FORMAT_RAW: ClassVar[str] = "raw"
    FORMAT_HTML: ClassVar[str] = "html"
    FORMAT_JSON: ClassVar[str] = "json"

    status_code: int = 200
    format: str = FORMAT_HTML
    charset: str = "utf-8"
    data: Any = None
    content: str | bytes | None = None
    stream: FileStream | None = None

    def init(self) -> None:
        self.headers = MutableHeaders()
        self.cookies: list[dict[str, Any]] = []
        self._psr7_response: StarletteResponse | None = None

    @property
    def is_adopted(self) -> bool:
        """True while a response adopted through :meth:`with_psr7_response` is held."""
        return self._psr7_response is not None

    @property
    def adopted_response(self) -> StarletteResponse | None:
        return self._psr7_response

    def set_status_code(self, code: int) -> Response:
        if not 100 <= code < 600:
            raise ValueError(f"The HTTP status code is invalid: {code}")
        self.status_code = code
        return self

    def set_cookie(self, key: str, value: str = "", **options: Any) -> None:
        """Queue a cookie; ``options`` are those of ``starlette.responses.Response.set_cookie``."""
        self.cookies.append({"key": key, "value": value, **options})

    def clear_body(self) -> None:
        """Drop body, stream and any adopted response; keep status and headers.

        ``Content-Length`` described the dropped body and is removed too.
        """
        if self.stream is not None:
            self.stream.close()
        if "content-length" in self.headers:
            del self.headers["content-length"]
        self.stream = None
        self.data = None
        self.content = None
        self._psr7_response = None

    def clear(self) -> None:
        self.clear_body()
        self.status_code = 200
        self.headers = MutableHeaders()
        self.cookies = []

    def with_psr7_response(self, response: StarletteResponse) -> Response:
        """Adopt ``response`` verbatim as this response.

        Status, headers and body are mirrored onto the framework fields so
        framework code can inspect them.
        """
        self._psr7_response = response
        self.status_code = response.status_code
        self.headers = MutableHeaders(raw=list(response.raw_headers))
        body = getattr(response, "body", None)
        if isinstance(body, bytes):
            self.content = body.decode(response.charset or self.charset, errors="replace")
        else:
            self.content = None
        return self

    def get_psr7_response(self) -> StarletteResponse:
        """Build the Starlette response; queued cookies are added to an adopted one too."""
        headers = dict(self.headers.items())
        response: StarletteResponse
        if self._psr7_response is not None:
            response = self._psr7_response
        elif self.stream is not None:
            response = StreamingResponse(
                self.stream, status_code=self.status_code, headers=headers
            )
        elif self.format == self.FORMAT_JSON:
            response = JSONResponse(self.data, status_code=self.status_code, headers=headers)
        else:
            content = self.content
            if content is None:
                content = "" if self.data is None else str(self.data)
            response = StarletteResponse(
                content,
                status_code=self.status_code,
                headers=headers,
                media_type="text/html" if self.format == self.FORMAT_HTML else None,
            )

        for cookie in self.cookies:
            response.set_cookie(**cookie)
        return response

    def send_stream_as_file(
        self,
        handle: IO[bytes],
        attachment_name: str,
        options: dict[str, Any] | None = None,
    ) -> Response:
        """Send the content of an open binary file handle as a download.

        Args:
            handle: Binary file handle, read from its current position.
            attachment_name: File name shown to the browser.
            options: ``mime_type`` (guessed from the name when missing) and
                ``inline`` (display in the browser instead of downloading).

        Returns:
            This response.
        """
        options = options or {}
        mime_type = (
            options.get("mime_type")
            or mimetypes.guess_type(attachment_name)[0]
            or "application/octet-stream"
        )

        self._psr7_response = None
        self.stream = FileStream(handle)
        self.format = self.FORMAT_RAW
        self.set_download_headers(
            attachment_name,
            mime_type,
            inline=options.get("inline", False),
            content_length=self.stream.get_size(),
        )
        return self

    def send_file(
        self,
        file_path: str | os.PathLike[str],
        attachment_name: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> Response:
        """Send a file from disk as a download.

        Raises:
            ServerErrorHttpException: If the file cannot be opened.
        """
        if attachment_name is None:
            attachment_name = os.path.basename(file_path)
        try:
            handle = open(file_path, "rb")  # closed by FileStream
        except OSError as exc:
            if self.logger:
                self.logger.error("Cannot open file for sending: %s (%s)", file_path, exc)
            raise ServerErrorHttpException() from exc
        return self.send_stream_as_file(handle, attachment_name, options)

    def set_download_headers(
        self,
        attachment_name: str,
        mime_type: str | None = None,
        inline: bool = False,
        content_length: int | None = None,
    ) -> Response:
        disposition = "inline" if inline else "attachment"
        quoted = quote(attachment_name)
        if quoted != attachment_name:
            self.headers["Content-Disposition"] = f"{disposition}; filename*=utf-8''{quoted}"
        else:
            self.headers["Content-Disposition"] = f'{disposition}; filename="{attachment_name}"'
        if mime_type is not None:
            self.headers["Content-Type"] = mime_type
        if content_length is not None:
            self.headers["Content-Length"] = str(content_length)
        return self
