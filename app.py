import re
from urllib.parse import urlsplit, urlunsplit

from flask import Flask, render_template, request, jsonify
import requests
from requests.exceptions import RequestException, SSLError, Timeout, TooManyRedirects
from curl_parser import CommandLineParser, ParsedRequest, ParsingOptions

app = Flask(__name__)
app.config.from_mapping(
    MAX_UPLOAD_FILES=10,
    REQUEST_TIMEOUT=30,
    HOST="0.0.0.0",
    PORT=7700,
)
# CURL_PARSER_PORT=8000 и т.п. перекрывают значения по умолчанию
app.config.from_prefixed_env("CURL_PARSER")

# "\" + перевод строки из скопированных многострочных команд
LINE_CONTINUATION = re.compile(r"\\\r?\n")
SERVICE_HEADERS = {"host", "content-length", "transfer-encoding"}


def get_parser() -> CommandLineParser:
    options = ParsingOptions.from_mapping(app.config)
    parser = app.extensions.get("curl_parser")
    if parser is None or parser.options != options:
        parser = app.extensions["curl_parser"] = CommandLineParser(options)
    return parser


def parse_command(curl_cmd: str):
    return get_parser().parse(LINE_CONTINUATION.sub(" ", curl_cmd))


def build_request_kwargs(parsed: ParsedRequest, default_timeout: float) -> dict:
    """Переводит ParsedRequest в аргументы requests.request()."""
    if parsed.upload_files or parsed.has_file_references:
        # содержимого файлов у нас нет, как и раньше с -F name=@file
        raise ValueError("Загрузка файлов (@file, -T) не поддерживается в этой версии.")

    headers = {}
    seen = set()
    for name in parsed.headers.keys():
        # Нельзя выставлять эти служебные, requests сам выставит корректно
        if name.lower() in seen or name.lower() in SERVICE_HEADERS:
            continue
        seen.add(name.lower())
        separator = "; " if name.lower() == "cookie" else ", "
        headers[name] = separator.join(parsed.headers.getlist(name))
    if parsed.cookie:
        # -b дописываем к уже заданному -H cookie, под тем же ключом
        key = next((name for name in headers if name.lower() == "cookie"), "Cookie")
        headers[key] = f"{headers[key]}; {parsed.cookie}" if key in headers else parsed.cookie

    auth = None
    if parsed.user_password is not None:
        user, _, pwd = parsed.user_password.partition(":")
        auth = (user, pwd)

    verify = not parsed.insecure
    if verify and parsed.ca_certificate:
        verify = parsed.ca_certificate

    cert = None
    if parsed.certificate:
        cert = (parsed.certificate, parsed.private_key) if parsed.private_key else parsed.certificate

    proxies = None
    if parsed.proxy:
        proxy = _proxy_url(parsed.proxy, parsed.proxy_user_password)
        proxies = {"http": proxy, "https": proxy}

    timeout = parsed.max_time or default_timeout
    if parsed.connect_timeout:
        timeout = (parsed.connect_timeout, timeout)

    return {
        "method": parsed.http_method,
        "url": parsed.effective_url(),
        "headers": headers,
        "data": None if parsed.data_as_query else parsed.payload_text(),
        "files": [(f.name, (None, f.content)) for f in parsed.form_data] or None,
        "auth": auth,
        "verify": verify,
        "cert": cert,
        "proxies": proxies,
        "timeout": timeout,
        "allow_redirects": parsed.follow_location,
    }


def _proxy_url(proxy: str, user_password=None) -> str:
    if "://" not in proxy:
        proxy = "http://" + proxy
    if not user_password:
        return proxy
    parts = urlsplit(proxy)
    netloc = f"{user_password}@{parts.netloc.rpartition('@')[2]}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


@app.get("/")
def index():
    return render_template("index.html")


@app.post("/parse")
def parse():
    payload = request.get_json(force=True, silent=True) or {}
    curl_cmd = payload.get("curl", "")
    try:
        result = parse_command(curl_cmd)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if result.warnings:
        app.logger.info("curl parsed with warnings: %s", "; ".join(result.warnings))
    return jsonify(result.to_dict()), 200


@app.post("/run")
def run():
    payload = request.get_json(force=True, silent=True) or {}
    curl_cmd = payload.get("curl", "")

    try:
        result = parse_command(curl_cmd)
        if not result.success:
            return jsonify({"error": "; ".join(result.errors), **result.to_dict()}), 400

        spec = build_request_kwargs(result.data, float(app.config["REQUEST_TIMEOUT"]))
        resp = requests.request(**spec)

        # Пытаемся определить, текст ли это
        content_type = resp.headers.get("Content-Type", "")
        is_textual = any(ct in content_type for ct in ["text/", "json", "xml", "javascript", "yaml"])

        size_bytes = len(resp.content)

        if is_textual:
            # уважим кодировку, если известна
            resp.encoding = resp.encoding or "utf-8"
            body_text = resp.text
        else:
            # бинарь в base64 не возвращаем, чтоб не раздуть ответ, покажем заметку
            body_text = f"[binary content: {size_bytes} bytes, Content-Type: {content_type}]"

        return jsonify({
            "request": {
                "method": spec["method"],
                "url": resp.request.url,
                "headers": dict(resp.request.headers),
                "has_body": bool(spec["data"] or spec["files"]),
            },
            "response": {
                "status": resp.status_code,
                "reason": resp.reason,
                "url": resp.url,
                "elapsed_ms": int(resp.elapsed.total_seconds() * 1000),
                "headers": dict(resp.headers),
                "cookies": resp.cookies.get_dict(),
                "size_bytes": size_bytes,
                "body": body_text,
            },
            "warnings": result.warnings,
        }), 200

    except (ValueError,) as e:
        return jsonify({"error": str(e)}), 400
    except SSLError as e:
        app.logger.warning("SSL error for %s: %s", curl_cmd, e)
        return jsonify({"error": f"SSL error: {e}"}), 502
    except Timeout:
        return jsonify({"error": "Timeout"}), 504
    except TooManyRedirects:
        return jsonify({"error": "Too many redirects"}), 508
    except RequestException as e:
        app.logger.warning("request failed: %s", e)
        return jsonify({"error": f"Request error: {e}"}), 502


if __name__ == "__main__":
    app.run(host=app.config["HOST"], port=int(app.config["PORT"]), debug=True)
