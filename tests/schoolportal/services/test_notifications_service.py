import httpx
import pytest

from schoolportal.core import config
from schoolportal.services import notifications


def test_render_registration_email_escapes_names() -> None:
    body = notifications.render_registration_email('<Jane>', 'Doe', 'grade_head')

    assert '&lt;Jane&gt;' in body
    assert '<strong>grade head</strong>' in body


def test_send_registration_email_skips_without_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'RESEND_API_KEY', '')

    def fail_post(*_args, **_kwargs):
        raise AssertionError('no request expected')

    monkeypatch.setattr(notifications.httpx, 'post', fail_post)

    assert notifications.send_registration_email('jane@gmail.com', 'Jane', 'Doe', 'learner') is False


def test_send_registration_email_posts_to_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'RESEND_API_KEY', 're_test')
    captured = {}

    def fake_post(url, json, headers, timeout):
        captured.update(url=url, json=json, headers=headers)
        return httpx.Response(200, request=httpx.Request('POST', url))

    monkeypatch.setattr(notifications.httpx, 'post', fake_post)

    assert notifications.send_registration_email('jane@gmail.com', 'Jane', 'Doe', 'learner') is True
    assert captured['url'] == config.RESEND_API_URL
    assert captured['json']['to'] == ['jane@gmail.com']
    assert captured['headers'] == {'Authorization': 'Bearer re_test'}


def test_send_registration_email_returns_false_on_provider_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'RESEND_API_KEY', 're_test')

    def fake_post(url, **_kwargs):
        return httpx.Response(500, request=httpx.Request('POST', url))

    monkeypatch.setattr(notifications.httpx, 'post', fake_post)

    assert notifications.send_registration_email('jane@gmail.com', 'Jane', 'Doe', 'learner') is False
