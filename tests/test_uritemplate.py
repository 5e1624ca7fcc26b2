import pytest

from cloudqueues.core.uritemplate import UriTemplate

LIST = UriTemplate(
    "/queues/{queue_name}/messages?marker={marker}&limit={limit}&echo={echo}"
)

# ---------------------------------------------------------------------------
# expand()
# ---------------------------------------------------------------------------


def test_expand_path_only():
    assert UriTemplate("/queues/{queue_name}").expand({"queue_name": "demo"}) == "/queues/demo"


def test_expand_drops_unbound_query_parameters():
    assert LIST.expand({"queue_name": "demo", "echo": "true"}) == "/queues/demo/messages?echo=true"


def test_expand_drops_none_query_parameters():
    assert LIST.expand({"queue_name": "demo", "marker": None}) == "/queues/demo/messages"


def test_expand_keeps_template_order():
    uri = LIST.expand({"queue_name": "q", "echo": "false", "limit": "5", "marker": "m1"})
    assert uri == "/queues/q/messages?marker=m1&limit=5&echo=false"


def test_expand_percent_encodes_commas():
    template = UriTemplate("/queues/{queue_name}/messages?ids={ids}")
    assert template.expand({"queue_name": "q", "ids": "a,b"}) == "/queues/q/messages?ids=a%2Cb"


def test_expand_encodes_path_segment():
    assert UriTemplate("/x/{v}").expand({"v": "a/b c"}) == "/x/a%2Fb%20c"


def test_expand_missing_path_parameter_raises():
    with pytest.raises(ValueError):
        LIST.expand({"limit": "5"})


def test_query_value_must_be_a_variable():
    with pytest.raises(ValueError):
        UriTemplate("/queues?detailed=true")


def test_variables():
    assert LIST.variables == ("queue_name", "marker", "limit", "echo")


# ---------------------------------------------------------------------------
# match()
# ---------------------------------------------------------------------------


def test_match_binds_path_and_query():
    bound = LIST.match("/queues/demo/messages?marker=6244-244224-783&limit=10")
    assert bound == {"queue_name": "demo", "marker": "6244-244224-783", "limit": "10"}


def test_match_tolerates_version_and_tenant_prefix():
    bound = LIST.match("/v1/123456/queues/demo/messages?marker=42")
    assert bound is not None
    assert bound["queue_name"] == "demo"
    assert bound["marker"] == "42"


def test_match_absolute_url():
    bound = LIST.match("https://queues.example.com/v1/queues/demo/messages?marker=7")
    assert bound is not None
    assert bound["marker"] == "7"


def test_match_wrong_path_returns_none():
    assert LIST.match("/queues/demo/claims?limit=10") is None


def test_match_ignores_unknown_query_parameters():
    bound = LIST.match("/queues/demo/messages?foo=bar&marker=1")
    assert bound == {"queue_name": "demo", "marker": "1"}


def test_match_inverts_expand():
    params = {"queue_name": "demo", "marker": "a b", "limit": "3", "echo": "true"}
    assert LIST.match(LIST.expand(params)) == params
