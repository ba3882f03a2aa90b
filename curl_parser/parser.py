import logging
from typing import Optional

from .cursor import CommandLineCursor
from .evaluators import EvaluatorRegistry
from .exceptions import InvalidArgumentError
from .models import ConvertResult, ParsedRequest, ParseState
from .options import ParsingOptions
from .urls import try_absolute_url

logger = logging.getLogger(__name__)

FORM_URLENCODED = "application/x-www-form-urlencoded"


class CommandLineParser:
    """Разбирает команду curl слева направо за один проход.

    Флаги уходят в реестр обработчиков (первый подошедший побеждает),
    голые слова проверяются на ``curl`` и URL. После прохода
    post_parsing() сводит неявные настройки и добавляет ошибки.
    """

    def __init__(self, options: Optional[ParsingOptions] = None, registry: Optional[EvaluatorRegistry] = None):
        self.options = options or ParsingOptions()
        self.registry = registry or EvaluatorRegistry.from_options(self.options)

    def parse(self, command_line: str) -> ConvertResult[ParsedRequest]:
        if not command_line or command_line.isspace():
            raise InvalidArgumentError("The command line is empty.")

        result = ConvertResult(ParsedRequest())
        state = ParseState()
        cursor = CommandLineCursor(command_line)
        while True:
            cursor.trim_leading()
            if not cursor:
                break
            if cursor.is_parameter():
                self._evaluate_parameter(cursor.read_parameter(), cursor, result)
            else:
                self._evaluate_value(cursor.read_value(), result, state)

        post_parsing(result, state)
        logger.debug("parsed %s %s: %d warning(s), %d error(s)",
                     result.data.http_method, result.data.url, len(result.warnings), len(result.errors))
        return result

    def _evaluate_parameter(self, parameter, cursor, result):
        evaluator = self.registry.find(parameter)
        if evaluator is None:
            result.warnings.append(f'Parameter "{parameter}" is not supported')
            return
        evaluator.apply(cursor, result)

    @staticmethod
    def _evaluate_value(value, result, state):
        if value.lower() == "curl":
            state.is_curl_command = True
            return
        if result.data.url is None:
            url = try_absolute_url(value)
            if url is not None:
                result.data.url = url
                return
        state.last_unknown_value = value


def post_parsing(result: ConvertResult[ParsedRequest], state: ParseState):
    request = result.data

    if request.url is None and state.last_unknown_value and not state.last_unknown_value.isspace():
        url = try_absolute_url(f"http://{state.last_unknown_value}")
        if url is not None:
            request.url = url

    # -d перекрывает -F и -T
    if request.has_data_payload:
        request.upload_files.clear()
        request.form_data.clear()

    if request.has_form_payload:
        request.upload_files.clear()

    if request.http_method is None:
        if request.has_data_payload or request.has_form_payload:
            request.http_method = "POST"
        elif request.has_file_payload:
            request.http_method = "PUT"
        else:
            request.http_method = "GET"

    if not request.headers.getlist("Content-Type") and request.has_data_payload:
        request.headers.add("Content-Type", FORM_URLENCODED)

    if not state.is_curl_command:
        _add_error(result, "Invalid curl command")

    if request.url is None:
        _add_error(result, "Unable to parse URL")


def _add_error(result, message):
    # повторный post_parsing не должен дублировать ошибки
    if message not in result.errors:
        result.errors.append(message)
