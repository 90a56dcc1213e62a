from __future__ import annotations

import httpx
import openai
import pytest

from studymentor.services.retry import RetryPolicy, is_transient_error

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status_code: int):
    return cls("boom", response=httpx.Response(status_code, request=_REQUEST), body=None)


class _Flaky:
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_transient_error_classification():
    assert is_transient_error(_status_error(openai.RateLimitError, 429))
    assert is_transient_error(_status_error(openai.InternalServerError, 503))
    assert is_transient_error(openai.APIConnectionError(request=_REQUEST))
    assert not is_transient_error(_status_error(openai.BadRequestError, 400))
    assert not is_transient_error(ValueError("nope"))


def test_retries_with_exponential_backoff_then_succeeds():
    sleeps: list[float] = []
    fn = _Flaky([_status_error(openai.RateLimitError, 429), _status_error(openai.RateLimitError, 429)])
    policy = RetryPolicy(max_attempts=3, base_delay_s=1.0, sleep=sleeps.append)

    assert policy.run(fn) == "ok"
    assert fn.calls == 3
    assert sleeps == [1.0, 2.0]


def test_gives_up_after_max_attempts_with_last_error():
    sleeps: list[float] = []
    errors = [_status_error(openai.RateLimitError, 429) for _ in range(3)]
    last = errors[-1]
    fn = _Flaky(errors)
    policy = RetryPolicy(max_attempts=3, base_delay_s=0.5, sleep=sleeps.append)

    with pytest.raises(openai.RateLimitError) as exc_info:
        policy.run(fn)

    assert exc_info.value is last
    assert fn.calls == 3
    assert sleeps == [0.5, 1.0]


def test_permanent_error_is_not_retried():
    sleeps: list[float] = []
    fn = _Flaky([_status_error(openai.AuthenticationError, 401)])

    with pytest.raises(openai.AuthenticationError):
        RetryPolicy(sleep=sleeps.append).run(fn)

    assert fn.calls == 1
    assert sleeps == []


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0).run(lambda: "ok")
