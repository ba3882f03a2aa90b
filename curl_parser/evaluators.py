import logging
from typing import Iterable, Optional
from urllib.parse import quote

from .cursor import CommandLineCursor
from .models import ConvertResult, DataKind, FormField, FormKind, ParsedRequest, UploadData
from .options import ParsingOptions
from .urls import try_absolute_url

logger = logging.getLogger(__name__)


class ParameterEvaluator:
    """Обработчик одного семейства флагов curl.

    ``keys``: имена флага без дефисов (``{"H", "header"}``).
    Обработчики не хранят состояния между вызовами parse().
    """

    keys = frozenset()

    def __init__(self, options: ParsingOptions):
        self.options = options

    @property
    def name(self):
        return max(sorted(self.keys), key=len)

    def matches(self, flag: str) -> bool:
        return flag in self.keys

    def apply(self, cursor: CommandLineCursor, result: ConvertResult[ParsedRequest]):
        raise NotImplementedError

    def read_value(self, cursor, result) -> Optional[str]:
        cursor.trim_leading()
        if not cursor:
            result.warnings.append(f'Parameter "{self.name}" requires a value')
            return None
        return cursor.read_value()


class SwitchEvaluator(ParameterEvaluator):
    """Флаг без значения."""

    def apply(self, cursor, result):
        self.switch(result.data)

    def switch(self, request: ParsedRequest):
        raise NotImplementedError


class ValueEvaluator(ParameterEvaluator):
    """Флаг с одним значением следом."""

    def apply(self, cursor, result):
        value = self.read_value(cursor, result)
        if value is not None:
            self.evaluate(value, result)

    def evaluate(self, value: str, result: ConvertResult[ParsedRequest]):
        raise NotImplementedError


# --- метод и URL ---


class RequestEvaluator(ValueEvaluator):
    keys = frozenset({"X", "request"})

    def evaluate(self, value, result):
        if not value.strip():
            result.warnings.append(f'Invalid value "{value}" for parameter "{self.name}"')
            return
        result.data.http_method = value.upper()


class HeadEvaluator(SwitchEvaluator):
    keys = frozenset({"I", "head"})

    def switch(self, request):
        request.http_method = "HEAD"


class GetEvaluator(SwitchEvaluator):
    keys = frozenset({"G", "get"})

    def switch(self, request):
        request.http_method = "GET"
        request.data_as_query = True


class UrlEvaluator(ValueEvaluator):
    keys = frozenset({"url"})

    def evaluate(self, value, result):
        url = try_absolute_url(value) or try_absolute_url(f"http://{value}")
        if url is None:
            result.warnings.append(f'Unable to parse URL "{value}"')
            return
        result.data.url = url


# --- заголовки ---


def has_newline(value):
    # Headers не принимает переводы строк в значениях
    return "\n" in value or "\r" in value


class HeaderEvaluator(ValueEvaluator):
    keys = frozenset({"H", "header"})

    def evaluate(self, value, result):
        if has_newline(value):
            result.warnings.append(f'Unable to parse header "{value}"')
            return
        headers = result.data.headers
        colon = value.find(":")
        semicolon = value.find(";")
        if colon > 0:
            name, val = value[:colon].strip(), value[colon + 1:].strip()
            if val:
                headers.add(name, val)
            else:
                # "Name:" в curl убирает заголовок
                headers.remove(name)
        elif semicolon > 0 and not value[semicolon + 1:].strip():
            headers.add(value[:semicolon].strip(), "")
        else:
            result.warnings.append(f'Unable to parse header "{value}"')


class NamedHeaderEvaluator(ValueEvaluator):
    header_name = None

    def evaluate(self, value, result):
        if has_newline(value):
            result.warnings.append(f'Invalid value "{value}" for parameter "{self.name}"')
            return
        result.data.headers.set(self.header_name, value)


class UserAgentEvaluator(NamedHeaderEvaluator):
    keys = frozenset({"A", "user-agent"})
    header_name = "User-Agent"


class RefererEvaluator(NamedHeaderEvaluator):
    keys = frozenset({"e", "referer"})
    header_name = "Referer"


class CookieEvaluator(ValueEvaluator):
    keys = frozenset({"b", "cookie"})

    def evaluate(self, value, result):
        if "=" not in value:
            result.warnings.append(f'Cookie file "{value}" is not supported')
            return
        request = result.data
        request.cookie = f"{request.cookie}; {value}" if request.cookie else value


# --- тело запроса ---


class DataEvaluator(ValueEvaluator):
    keys = frozenset({"d", "data", "data-ascii"})
    kind = DataKind.ASCII
    allow_files = True

    def evaluate(self, value, result):
        if self.allow_files and value.startswith("@"):
            entry = UploadData(value[1:], self.kind, is_file=True)
        else:
            entry = UploadData(value, self.kind)
        result.data.payload.append(entry)


class DataRawEvaluator(DataEvaluator):
    keys = frozenset({"data-raw"})
    kind = DataKind.RAW
    allow_files = False


class DataBinaryEvaluator(DataEvaluator):
    keys = frozenset({"data-binary"})
    kind = DataKind.BINARY


class JsonEvaluator(DataEvaluator):
    keys = frozenset({"json"})
    kind = DataKind.JSON

    def evaluate(self, value, result):
        super().evaluate(value, result)
        headers = result.data.headers
        for name in ("Content-Type", "Accept"):
            if name not in headers:
                headers.add(name, "application/json")


class DataUrlEncodeEvaluator(ValueEvaluator):
    """--data-urlencode: content, =content, name=content, @file, name@file."""

    keys = frozenset({"data-urlencode"})

    def evaluate(self, value, result):
        eq = value.find("=")
        at = value.find("@")
        if at != -1 and (eq == -1 or at < eq):
            entry = UploadData(value[at + 1:], DataKind.URL_ENCODED, is_file=True, name=value[:at] or None)
        elif eq != -1:
            name, content = value[:eq], quote(value[eq + 1:], safe="")
            entry = UploadData(f"{name}={content}" if name else content, DataKind.URL_ENCODED)
        else:
            entry = UploadData(quote(value, safe=""), DataKind.URL_ENCODED)
        result.data.payload.append(entry)


class FormEvaluator(ValueEvaluator):
    keys = frozenset({"F", "form"})
    literal = False

    def evaluate(self, value, result):
        name, sep, content = value.partition("=")
        if not sep or not name:
            result.warnings.append(f'Unable to parse form value "{value}"')
            return
        kind = FormKind.VALUE
        if not self.literal and content[:1] == "@":
            kind, content = FormKind.FILE, content[1:]
        elif not self.literal and content[:1] == "<":
            kind, content = FormKind.FILE_CONTENT, content[1:]
        result.data.form_data.append(FormField(name, content, kind))


class FormStringEvaluator(FormEvaluator):
    keys = frozenset({"form-string"})
    literal = True


class UploadFileEvaluator(ValueEvaluator):
    keys = frozenset({"T", "upload-file"})

    def evaluate(self, value, result):
        files = result.data.upload_files
        if len(files) >= self.options.max_upload_files:
            result.warnings.append(
                f'Only {self.options.max_upload_files} upload files are supported, "{value}" is ignored'
            )
            return
        files.append(value)


# --- авторизация, прокси, TLS ---


class UserEvaluator(ValueEvaluator):
    keys = frozenset({"u", "user"})

    def evaluate(self, value, result):
        result.data.user_password = value


class ProxyEvaluator(ValueEvaluator):
    keys = frozenset({"x", "proxy"})

    def evaluate(self, value, result):
        result.data.proxy = value


class ProxyUserEvaluator(ValueEvaluator):
    keys = frozenset({"U", "proxy-user"})

    def evaluate(self, value, result):
        result.data.proxy_user_password = value


class CertificateEvaluator(ValueEvaluator):
    keys = frozenset({"E", "cert"})

    def evaluate(self, value, result):
        # windows-пути вида C:\cert.pem не режем по первому двоеточию
        cut = value.find(":", 2 if value[1:3] == ":\\" else 0)
        if cut == -1:
            result.data.certificate = value
        else:
            result.data.certificate = value[:cut]
            result.data.certificate_password = value[cut + 1:]


class KeyEvaluator(ValueEvaluator):
    keys = frozenset({"key"})

    def evaluate(self, value, result):
        result.data.private_key = value


class CaCertificateEvaluator(ValueEvaluator):
    keys = frozenset({"cacert"})

    def evaluate(self, value, result):
        result.data.ca_certificate = value


class InsecureEvaluator(SwitchEvaluator):
    keys = frozenset({"k", "insecure"})

    def switch(self, request):
        request.insecure = True


class CompressedEvaluator(SwitchEvaluator):
    keys = frozenset({"compressed"})

    def switch(self, request):
        request.compressed = True


class LocationEvaluator(SwitchEvaluator):
    keys = frozenset({"L", "location"})

    def switch(self, request):
        request.follow_location = True


# --- таймауты ---


class SecondsEvaluator(ValueEvaluator):
    attribute = None

    def evaluate(self, value, result):
        try:
            seconds = float(value)
        except ValueError:
            result.warnings.append(f'Invalid value "{value}" for parameter "{self.name}"')
            return
        setattr(result.data, self.attribute, seconds)


class MaxTimeEvaluator(SecondsEvaluator):
    keys = frozenset({"m", "max-time"})
    attribute = "max_time"


class ConnectTimeoutEvaluator(SecondsEvaluator):
    keys = frozenset({"connect-timeout"})
    attribute = "connect_timeout"


# --- флаги, которые на запрос не влияют ---


class IgnoredSwitchEvaluator(SwitchEvaluator):
    keys = frozenset({
        "s", "silent", "S", "show-error", "v", "verbose", "i", "include",
        "#", "progress-bar", "f", "fail", "N", "no-buffer", "no-keepalive",
        "trace-time", "globoff", "g", "O", "remote-name", "remote-name-all",
    })

    def switch(self, request):
        pass


class IgnoredValueEvaluator(ValueEvaluator):
    keys = frozenset({
        "o", "output", "D", "dump-header", "trace", "trace-ascii", "stderr",
        "w", "write-out", "c", "cookie-jar", "retry", "retry-delay",
        "retry-max-time", "limit-rate",
    })

    def apply(self, cursor, result):
        cursor.trim_leading()
        if cursor:
            cursor.read_value()


# Порядок важен: первый подошедший обработчик забирает флаг.
EVALUATOR_CLASSES = (
    RequestEvaluator,
    HeadEvaluator,
    GetEvaluator,
    UrlEvaluator,
    HeaderEvaluator,
    UserAgentEvaluator,
    RefererEvaluator,
    CookieEvaluator,
    DataEvaluator,
    DataRawEvaluator,
    DataBinaryEvaluator,
    DataUrlEncodeEvaluator,
    JsonEvaluator,
    FormEvaluator,
    FormStringEvaluator,
    UploadFileEvaluator,
    UserEvaluator,
    ProxyEvaluator,
    ProxyUserEvaluator,
    CertificateEvaluator,
    KeyEvaluator,
    CaCertificateEvaluator,
    InsecureEvaluator,
    CompressedEvaluator,
    LocationEvaluator,
    MaxTimeEvaluator,
    ConnectTimeoutEvaluator,
    IgnoredSwitchEvaluator,
    IgnoredValueEvaluator,
)


class EvaluatorRegistry:
    """Упорядоченный неизменяемый набор обработчиков флагов."""

    def __init__(self, evaluators: Iterable[ParameterEvaluator]):
        self._evaluators = tuple(evaluators)
        seen = {}
        for evaluator in self._evaluators:
            for key in evaluator.keys:
                if key in seen:
                    raise ValueError(
                        f'Parameter "{key}" is claimed by both '
                        f"{type(seen[key]).__name__} and {type(evaluator).__name__}"
                    )
                seen[key] = evaluator

    @classmethod
    def from_options(cls, options: ParsingOptions) -> "EvaluatorRegistry":
        return cls(evaluator_class(options) for evaluator_class in EVALUATOR_CLASSES)

    def __iter__(self):
        return iter(self._evaluators)

    def __len__(self):
        return len(self._evaluators)

    def find(self, flag: str) -> Optional[ParameterEvaluator]:
        for evaluator in self._evaluators:
            if evaluator.matches(flag):
                logger.debug("parameter %r -> %s", flag, type(evaluator).__name__)
                return evaluator
        return None
