import datetime

import pytest
import requests
from requests.exceptions import Timeout

import app as app_module
from curl_parser import parse_curl


@pytest.fixture
def client():
    app_module.app.config.update(TESTING=True)
    with app_module.app.test_client() as client:
        yield client


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_request(**kwargs):
        calls.append(kwargs)
        resp = requests.Response()
        resp.status_code = 200
        resp.reason = 'OK'
        resp.url = kwargs['url']
        resp.headers['Content-Type'] = 'application/json'
        resp._content = b'{"ok": true}'
        resp.elapsed = datetime.timedelta(milliseconds=12)
        resp.request = requests.Request(kwargs['method'], kwargs['url'], headers=kwargs['headers']).prepare()
        return resp

    monkeypatch.setattr(requests, 'request', fake_request)
    return calls


def test_parse_endpoint(client):
    resp = client.post('/parse', json={'curl': 'curl http://a.b -H "Accept: */*" --bogus'})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['errors'] == []
    assert body['warnings'] == ['Parameter "bogus" is not supported']
    assert body['data']['url'] == 'http://a.b'
    assert body['data']['method'] == 'GET'
    assert body['data']['headers'] == [['Accept', '*/*']]


def test_parse_endpoint_reports_errors_with_200(client):
    resp = client.post('/parse', json={'curl': 'example.com'})
    assert resp.status_code == 200
    assert resp.get_json()['errors'] == ['Invalid curl command']


def test_parse_endpoint_joins_line_continuations(client):
    resp = client.post('/parse', json={'curl': 'curl \\\n  -X PUT \\\r\n  http://a.b'})
    data = resp.get_json()['data']
    assert data['url'] == 'http://a.b'
    assert data['method'] == 'PUT'


def test_parse_endpoint_rejects_empty_command(client):
    resp = client.post('/parse', json={'curl': '  '})
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'The command line is empty.'


def test_run_sends_request(client, sent):
    resp = client.post('/run', json={'curl': "curl -X POST http://a.b/api -d 'x=1' -u bob:secret"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['response']['status'] == 200
    assert body['response']['body'] == '{"ok": true}'
    assert body['request']['has_body'] is True
    kwargs = sent[0]
    assert kwargs['method'] == 'POST'
    assert kwargs['url'] == 'http://a.b/api'
    assert kwargs['data'] == 'x=1'
    assert kwargs['auth'] == ('bob', 'secret')
    assert kwargs['headers'] == {'Content-Type': 'application/x-www-form-urlencoded'}
    assert kwargs['timeout'] == 30.0
    assert kwargs['allow_redirects'] is False


def test_run_refuses_invalid_command(client, sent):
    resp = client.post('/run', json={'curl': 'curl -H "A: b"'})
    assert resp.status_code == 400
    assert resp.get_json()['errors'] == ['Unable to parse URL']
    assert sent == []


def test_run_refuses_file_uploads(client, sent):
    resp = client.post('/run', json={'curl': 'curl http://a.b -F file=@photo.png'})
    assert resp.status_code == 400
    assert sent == []


def test_run_timeout(client, monkeypatch):
    def fake_request(**kwargs):
        raise Timeout()

    monkeypatch.setattr(requests, 'request', fake_request)
    resp = client.post('/run', json={'curl': 'curl http://a.b'})
    assert resp.status_code == 504


def test_upload_limit_follows_config(monkeypatch):
    monkeypatch.setitem(app_module.app.config, 'MAX_UPLOAD_FILES', 1)
    assert app_module.get_parser().options.max_upload_files == 1


def test_build_request_kwargs():
    parsed = parse_curl(
        "curl -G http://a.b/s -d q=1 -H 'Accept: a' -H 'accept: b' -H 'Host: x' -b s=1 "
        "-x proxy.local:3128 -U u:p -E c.pem --key k.pem --cacert ca.pem -m 5 --connect-timeout 2 -L"
    ).data
    kwargs = app_module.build_request_kwargs(parsed, 30)
    assert kwargs['method'] == 'GET'
    assert kwargs['url'] == 'http://a.b/s?q=1'
    assert kwargs['data'] is None
    assert kwargs['headers']['Accept'] == 'a, b'
    assert 'Host' not in kwargs['headers']
    assert kwargs['headers']['Cookie'] == 's=1'
    assert kwargs['proxies'] == {'http': 'http://u:p@proxy.local:3128', 'https': 'http://u:p@proxy.local:3128'}
    assert kwargs['cert'] == ('c.pem', 'k.pem')
    assert kwargs['verify'] == 'ca.pem'
    assert kwargs['timeout'] == (2.0, 5.0)
    assert kwargs['allow_redirects'] is True


def test_build_request_kwargs_multipart_form():
    parsed = parse_curl('curl http://a.b -F a=1 --form-string b=@2 -k').data
    kwargs = app_module.build_request_kwargs(parsed, 30)
    assert kwargs['files'] == [('a', (None, '1')), ('b', (None, '@2'))]
    assert kwargs['data'] is None
    assert kwargs['verify'] is False


def test_build_request_kwargs_merges_cookies_under_existing_key():
    parsed = parse_curl("curl http://a.b -H 'cookie: a=1' -H 'Cookie: c=3' -b b=2").data
    headers = app_module.build_request_kwargs(parsed, 30)['headers']
    assert headers == {'cookie': 'a=1; c=3; b=2'}
