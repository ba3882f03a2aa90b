from typing import Optional

from .evaluators import EvaluatorRegistry, ParameterEvaluator
from .exceptions import InvalidArgumentError
from .models import ConvertResult, DataKind, FormField, FormKind, ParsedRequest, ParseState, UploadData
from .options import ParsingOptions
from .parser import CommandLineParser, post_parsing

_default_parser = CommandLineParser()


def parse_curl(curl_cmd: str, options: Optional[ParsingOptions] = None) -> ConvertResult[ParsedRequest]:
    """
    Разбирает команду curl (без запуска shell) в ConvertResult[ParsedRequest].
    Поддержка:
      -X / --request METHOD, -I / --head, -G / --get, --url URL
      -H / --header "Name: value", -A / --user-agent, -e / --referer, -b / --cookie
      -d / --data / --data-ascii / --data-raw / --data-binary / --data-urlencode, --json
      -F / --form, --form-string, -T / --upload-file
      -u / --user, -x / --proxy, -U / --proxy-user
      -E / --cert, --key, --cacert, -k / --insecure, --compressed, -L / --location
      -m / --max-time, --connect-timeout
    Неизвестные флаги попадают в warnings, проблемы с командой в целом в errors.
    Пустая строка сразу даёт InvalidArgumentError.
    """
    parser = _default_parser if options is None else CommandLineParser(options)
    return parser.parse(curl_cmd)


__all__ = [
    "CommandLineParser",
    "ConvertResult",
    "DataKind",
    "EvaluatorRegistry",
    "FormField",
    "FormKind",
    "InvalidArgumentError",
    "ParameterEvaluator",
    "ParseState",
    "ParsedRequest",
    "ParsingOptions",
    "UploadData",
    "parse_curl",
    "post_parsing",
]
