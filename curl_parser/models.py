from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, TypeVar
from urllib.parse import urlsplit, urlunsplit

from werkzeug.datastructures import Headers

T = TypeVar("T")


class DataKind(Enum):
    ASCII = "ascii"
    RAW = "raw"
    BINARY = "binary"
    URL_ENCODED = "urlencoded"
    JSON = "json"


class FormKind(Enum):
    VALUE = "value"
    FILE = "file"  # name=@file: файл как вложение
    FILE_CONTENT = "file_content"  # name=<file: содержимое файла как значение


@dataclass
class UploadData:
    content: str
    kind: DataKind
    is_file: bool = False
    # только для --data-urlencode name@file
    name: Optional[str] = None

    def to_dict(self):
        return {"content": self.content, "kind": self.kind.value, "is_file": self.is_file, "name": self.name}


@dataclass
class FormField:
    name: str
    content: str
    kind: FormKind = FormKind.VALUE

    def to_dict(self):
        return {"name": self.name, "content": self.content, "kind": self.kind.value}


@dataclass
class ParsedRequest:
    url: Optional[str] = None
    http_method: Optional[str] = None
    headers: Headers = field(default_factory=Headers)
    upload_files: List[str] = field(default_factory=list)
    form_data: List[FormField] = field(default_factory=list)
    payload: List[UploadData] = field(default_factory=list)
    data_as_query: bool = False
    cookie: Optional[str] = None
    user_password: Optional[str] = None
    insecure: bool = False
    compressed: bool = False
    follow_location: bool = False
    proxy: Optional[str] = None
    proxy_user_password: Optional[str] = None
    certificate: Optional[str] = None
    certificate_password: Optional[str] = None
    private_key: Optional[str] = None
    ca_certificate: Optional[str] = None
    max_time: Optional[float] = None
    connect_timeout: Optional[float] = None

    @property
    def has_data_payload(self) -> bool:
        return bool(self.payload)

    @property
    def has_form_payload(self) -> bool:
        return bool(self.form_data)

    @property
    def has_file_payload(self) -> bool:
        return bool(self.upload_files)

    @property
    def has_file_references(self) -> bool:
        return any(entry.is_file for entry in self.payload) or any(
            f.kind is not FormKind.VALUE for f in self.form_data
        )

    def payload_text(self) -> Optional[str]:
        """Тело запроса так, как его склеивает curl: несколько -d через '&'.

        Ссылки на файлы сюда не попадают, их содержимое нам недоступно.
        """
        parts = [entry.content for entry in self.payload if not entry.is_file]
        if not parts:
            return None
        return "&".join(parts)

    def effective_url(self) -> Optional[str]:
        """URL с учётом -G: тело уезжает в query string."""
        if self.url is None or not self.data_as_query:
            return self.url
        query = self.payload_text()
        if not query:
            return self.url
        parts = urlsplit(self.url)
        query = f"{parts.query}&{query}" if parts.query else query
        return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))

    def to_dict(self):
        return {
            "url": self.url,
            "effective_url": self.effective_url(),
            "method": self.http_method,
            "headers": [[name, value] for name, value in self.headers.items()],
            "data": self.payload_text(),
            "data_entries": [entry.to_dict() for entry in self.payload],
            "data_as_query": self.data_as_query,
            "form": [f.to_dict() for f in self.form_data],
            "upload_files": list(self.upload_files),
            "cookie": self.cookie,
            "user": self.user_password,
            "insecure": self.insecure,
            "compressed": self.compressed,
            "follow_location": self.follow_location,
            "proxy": self.proxy,
            "proxy_user": self.proxy_user_password,
            "cert": self.certificate,
            "cert_password": self.certificate_password,
            "key": self.private_key,
            "cacert": self.ca_certificate,
            "max_time": self.max_time,
            "connect_timeout": self.connect_timeout,
        }


@dataclass
class ConvertResult(Generic[T]):
    data: T
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self):
        data = self.data.to_dict() if hasattr(self.data, "to_dict") else self.data
        return {"data": data, "warnings": list(self.warnings), "errors": list(self.errors)}


@dataclass
class ParseState:
    is_curl_command: bool = False
    last_unknown_value: Optional[str] = None
