import ratelimit
from ratelimit import RateLimitRule

RULE = RateLimitRule(max_attempts=3, window_seconds=60, block_seconds=300)


def test_allows_up_to_the_limit_then_blocks():
    results = [ratelimit.check("k", RULE, now=1000) for _ in range(3)]
    assert [r.remaining for r in results] == [2, 1, 0]
    denied = ratelimit.check("k", RULE, now=1001)
    assert not denied.allowed
    assert denied.blocked
    assert "5 dakika" in denied.message


def test_block_outlasts_the_window():
    for _ in range(4):
        ratelimit.check("k", RULE, now=1000)
    assert not ratelimit.check("k", RULE, now=1100).allowed
    assert ratelimit.check("k", RULE, now=1301).allowed


def test_window_expiry_resets_count_without_block_rule():
    rule = RateLimitRule(max_attempts=1, window_seconds=60)
    assert ratelimit.check("k", rule, now=0).allowed
    result = ratelimit.check("k", rule, now=10)
    assert not result.allowed and not result.blocked
    assert ratelimit.check("k", rule, now=61).allowed


def test_reset_and_separate_keys():
    for _ in range(4):
        ratelimit.check("a", RULE, now=0)
    assert ratelimit.check("b", RULE, now=0).allowed
    ratelimit.reset("a")
    assert ratelimit.check("a", RULE, now=0).allowed


def test_client_ip_prefers_forwarded_headers():
    from fastapi import Request

    def request(headers, host="10.0.0.1"):
        scope = {"type": "http", "headers": [(k.encode(), v.encode()) for k, v in headers.items()],
                 "client": (host, 1234)}
        return Request(scope)

    assert ratelimit.client_ip(request({"x-forwarded-for": "1.2.3.4, 10.0.0.2"})) == "1.2.3.4"
    assert ratelimit.client_ip(request({"x-real-ip": "5.6.7.8"})) == "5.6.7.8"
    assert ratelimit.client_ip(request({})) == "10.0.0.1"
