"""
Tests for PortNegotiator — prompting, conflict resolution, fallback.
"""

import pytest
from helpers import FakeProber, ScriptedOperator

from scaffold.core.models.ports import PortRequest, PortSource
from scaffold.core.services.ports.negotiator import PortNegotiator, fallback_port


def _negotiator(answers, busy=None, unknown=None, **kwargs):
    operator = ScriptedOperator(answers)
    prober = FakeProber(busy=busy, unknown=unknown)
    return PortNegotiator(operator, prober, **kwargs), operator, prober


class TestAsk:
    def test_default_accepted(self):
        neg, op, _ = _negotiator([None])
        a = neg.negotiate(PortRequest(label="web HTTP", default_port=8080))
        assert a.port == 8080
        assert a.source == PortSource.USER_DEFAULT
        assert a.verified
        assert op.prompts == ["Host port for web HTTP [8080]"]

    def test_custom_port(self):
        neg, _, _ = _negotiator(["9090"])
        a = neg.negotiate(PortRequest(label="web HTTP", default_port=8080))
        assert a.port == 9090
        assert a.source == PortSource.USER_CUSTOM

    def test_typed_default_counts_as_default(self):
        neg, _, _ = _negotiator(["8080"])
        a = neg.negotiate(PortRequest(label="web HTTP", default_port=8080))
        assert a.source == PortSource.USER_DEFAULT

    @pytest.mark.parametrize("bad", ["abc", "80", "70000", "-1", "8080x"])
    def test_invalid_reprompted(self, bad):
        neg, op, _ = _negotiator([bad, "9000"])
        a = neg.negotiate(PortRequest(label="web HTTP", default_port=8080))
        assert a.port == 9000
        assert len(op.prompts) == 2
        assert op.texts("warning") == [
            f"Invalid port '{bad}'. Must be a number between 1024 and 65535."
        ]


class TestConflicts:
    def test_busy_default_suggests_next_and_reprobes(self):
        neg, op, prober = _negotiator([None, True], busy={3306: "mysqld (pid 1)"})

        a = neg.negotiate(PortRequest(label="MySQL host", default_port=3306))

        assert a.port == 3307
        assert a.source == PortSource.AUTO_SUGGESTED
        assert a.verified
        assert "Port 3306 is already in use by mysqld (pid 1)." in op.texts("warning")
        assert "Use port 3307 for MySQL host?" in op.prompts
        # 3307 probed while scanning and again after acceptance
        assert prober.probed == [3306, 3307, 3307]

    def test_scan_skips_busy_ports(self):
        neg, _, _ = _negotiator([None, True], busy={8080: "a", 8081: "b", 8082: "c"})
        a = neg.negotiate(PortRequest(label="web HTTP", default_port=8080))
        assert a.port == 8083

    def test_rejected_suggestion_asks_again(self):
        neg, op, _ = _negotiator([None, False, "9000"], busy={3306: "mysqld"})
        a = neg.negotiate(PortRequest(label="MySQL host", default_port=3306))
        assert a.port == 9000
        assert a.source == PortSource.USER_CUSTOM
        assert op.prompts.count("Host port for MySQL host [3306]") == 2

    def test_unverified_fallback(self):
        busy = {p: "x" for p in range(8080, 8084)}
        neg, op, _ = _negotiator([None, True], busy=busy, scan_attempts=3)

        a = neg.negotiate(PortRequest(label="web HTTP", default_port=8080))

        assert a.port == 9080
        assert not a.verified
        assert a.source == PortSource.AUTO_SUGGESTED
        assert any("has NOT been verified" in w for w in op.texts("warning"))

    def test_unknown_assumed_free_with_warning(self):
        neg, op, _ = _negotiator([None], unknown={8025})
        a = neg.negotiate(PortRequest(label="Mailpit web", default_port=8025))
        assert a.port == 8025
        assert not a.verified
        assert any("Could not determine" in w for w in op.texts("warning"))

    def test_unchecked_candidate_not_reported_free(self):
        neg, op, _ = _negotiator([None, True], busy={8080: "nginx"}, unknown={8081})
        a = neg.negotiate(PortRequest(label="web HTTP", default_port=8080))
        assert a.port == 8081
        assert not a.verified
        assert "Port 8081 looks free." not in op.texts("info")
        assert "Port 8081 could not be checked; it may also be in use." in op.texts("warning")

    def test_ports_unique_within_session(self):
        neg, op, _ = _negotiator([None, None, True])
        first = neg.negotiate(PortRequest(label="web HTTP", default_port=8080))
        second = neg.negotiate(PortRequest(label="Mercure hub", default_port=8080))
        assert first.port == 8080
        assert second.port == 8081
        assert "Port 8080 is already in use by this project (web HTTP)." in op.texts("warning")
        assert neg.assigned == {8080: "web HTTP", 8081: "Mercure hub"}


class TestNegotiatePort:
    def test_free_requested_port(self):
        neg, op, _ = _negotiator([])
        assert neg.negotiate_port("shared Mailpit smtp", 1025) == 1025
        assert op.prompts == []

    def test_invalid_requested_port_falls_back_to_prompt(self):
        neg, op, _ = _negotiator(["2025"])
        assert neg.negotiate_port("shared Mailpit smtp", 25) == 2025
        assert op.texts("warning")[0].startswith("Invalid port '25'")


class TestRenegotiate:
    def test_current_port_kept_without_check(self):
        # The project's own container is listening there
        neg, op, prober = _negotiator([None], busy={8080: "docker-proxy"})
        a = neg.renegotiate("web HTTP", 8080)
        assert a.port == 8080
        assert a.source == PortSource.USER_DEFAULT
        assert prober.probed == []
        assert op.prompts == ["Host port for web HTTP [8080]"]

    def test_new_port_is_checked(self):
        neg, _, _ = _negotiator(["9090", True], busy={9090: "nginx"})
        a = neg.renegotiate("web HTTP", 8080)
        assert a.port == 9091
        assert a.source == PortSource.AUTO_SUGGESTED

    def test_current_port_taken_earlier_in_session(self):
        neg, op, _ = _negotiator(["8443", None, True])
        neg.renegotiate("web HTTP", 8080)
        a = neg.renegotiate("web HTTPS", 8443)
        assert a.port == 8444
        assert "Port 8443 is already in use by this project (web HTTP)." in op.texts("warning")


class TestFallbackPort:
    def test_adds_offset(self):
        assert fallback_port(8080, 1000) == 9080

    def test_subtracts_past_top(self):
        assert fallback_port(65000, 1000) == 64000

    def test_never_below_minimum(self):
        assert fallback_port(65535, 65000) == 1024
