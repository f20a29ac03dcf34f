"""
Field Validator

Per-field grammar checks for every user-editable peer, connection and
network field.

Each rule lives in ``FIELD_RULES`` and receives a tagged field value:
``StringField`` for plain strings, ``ToggleField`` for ``{enabled, value}``
override pairs and ``CompositeField`` for grouped fields such as ``scripts``.
Rules are deterministic, never mutate their input and never raise; a
failure is reported through ``ValidationResult``.
"""

import logging
import re
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel

from wgmesh.models.network import (
    SCRIPT_KEYS,
    Connection,
    EnabledValue,
    Mobility,
    Network,
    Peer,
    Scripts,
)

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\Z"
)
CIDR_PATTERN = re.compile(r"^[0-9]{1,3}(\.[0-9]{1,3}){3}/[0-9]{1,2}\Z")
HOSTNAME_LABEL_PATTERN = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)\Z")
INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+\Z")
SCRIPT_PATTERN = re.compile(r"^[^\r\n]*;[ \t]*\Z")

INVALID_FIELD_TYPE = "invalid field type"
LINE_BREAKS = ("\r", "\n")
UNKNOWN_FIELD = "field doesn't exist"


# ============================================================================
# Field value variants
# ============================================================================

@dataclass(frozen=True)
class StringField:
    """Plain string payload"""
    value: str


@dataclass(frozen=True)
class ToggleField:
    """``{enabled, value}`` override pair payload"""
    enabled: bool
    value: Any


@dataclass(frozen=True)
class CompositeField:
    """Group of sub-fields keyed by name (e.g. the four script hooks)"""
    items: Mapping[str, Any]


FieldValue = Union[StringField, ToggleField, CompositeField]


def as_field_value(raw: Any) -> Optional[FieldValue]:
    """
    Tag a raw edit payload with its variant

    Args:
        raw: str, ``{enabled, value}`` mapping, EnabledValue, Scripts,
            other mapping, or an already tagged value

    Returns:
        The tagged value, or None when the payload has no known shape
    """
    if isinstance(raw, (StringField, ToggleField, CompositeField)):
        return raw
    if isinstance(raw, str):
        return StringField(raw)
    if isinstance(raw, EnabledValue):
        return ToggleField(raw.enabled, raw.value)
    if isinstance(raw, Scripts):
        return CompositeField(raw.model_dump())
    if isinstance(raw, Mapping):
        if set(raw.keys()) == {"enabled", "value"}:
            if not isinstance(raw["enabled"], bool):
                return None
            return ToggleField(raw["enabled"], raw["value"])
        return CompositeField(raw)
    return None


def to_plain(field: FieldValue) -> Any:
    """Inverse of as_field_value: the JSON-ready form of a tagged value"""
    if isinstance(field, StringField):
        return field.value
    if isinstance(field, ToggleField):
        return {"enabled": field.enabled, "value": field.value}
    plain = {}
    for key, item in field.items.items():
        tagged = as_field_value(item)
        plain[key] = to_plain(tagged) if tagged is not None else item
    return plain


# ============================================================================
# Results and context
# ============================================================================

class ValidationResult(BaseModel):
    """
    Outcome of a field check

    Attributes:
        status: True when the value is acceptable
        message: Human-readable reason on failure, empty on success
        value: Plain form of the checked value
    """
    status: bool
    message: str = ""
    value: Any = None

    @property
    def error(self) -> Optional[str]:
        return None if self.status else self.message


@dataclass(frozen=True)
class ValidationContext:
    """
    Network state some rules need

    Attributes:
        network: Snapshot the edited peer belongs to
        peer_id: Peer being edited, excluded from uniqueness checks
    """
    network: Network
    peer_id: Optional[str] = None


Rule = Callable[[FieldValue, Optional[ValidationContext]], ValidationResult]


def _ok(field: FieldValue) -> ValidationResult:
    return ValidationResult(status=True, value=to_plain(field))


def _fail(field: FieldValue, message: str) -> ValidationResult:
    return ValidationResult(status=False, message=message, value=to_plain(field))


def _string_rule(check: Callable[[str, Optional[ValidationContext]], Optional[str]]) -> Rule:
    """Wrap a check that returns an error message (or None) for string fields"""
    def rule(field: FieldValue, context: Optional[ValidationContext]) -> ValidationResult:
        if not isinstance(field, StringField):
            return ValidationResult(status=False, message=INVALID_FIELD_TYPE)
        message = check(field.value, context)
        return _fail(field, message) if message else _ok(field)
    return rule


def _toggle_rule(
    check: Callable[[Any], bool],
    message: str,
    normalize: Optional[Callable[[Any], Any]] = None,
) -> Rule:
    """
    Wrap a value check for override pairs; disabled pairs always pass

    ``normalize`` maps an accepted enabled value to the form stored in
    ``ValidationResult.value`` (e.g. ``"+1420"`` -> ``1420``).
    """
    def rule(field: FieldValue, context: Optional[ValidationContext]) -> ValidationResult:
        if not isinstance(field, ToggleField):
            return ValidationResult(status=False, message=INVALID_FIELD_TYPE)
        if not field.enabled:
            return _ok(field)
        if not check(field.value):
            return _fail(field, message)
        if normalize is not None:
            field = ToggleField(field.enabled, normalize(field.value))
        return _ok(field)
    return rule


def _has_line_break(field: FieldValue) -> bool:
    """True when any string inside the payload spans more than one line"""
    if isinstance(field, (StringField, ToggleField)):
        values = [field.value]
    else:
        values = []
        for item in field.items.values():
            tagged = as_field_value(item)
            if isinstance(tagged, (StringField, ToggleField)):
                values.append(tagged.value)
    return any(
        isinstance(value, str) and any(char in value for char in LINE_BREAKS)
        for value in values
    )


# ============================================================================
# Grammar helpers
# ============================================================================

def is_ipv4(value: str) -> bool:
    try:
        IPv4Address(value)
    except ValueError:
        return False
    return True


def is_cidr(value: str) -> bool:
    if not CIDR_PATTERN.match(value):
        return False
    try:
        IPv4Network(value, strict=False)
    except ValueError:
        return False
    return True


def is_fqdn(value: str) -> bool:
    if not value or len(value) > 253:
        return False
    labels = value.rstrip(".").split(".")
    if any(not label for label in labels):
        return False
    if labels[-1].isdigit():
        return False
    return all(HOSTNAME_LABEL_PATTERN.match(label) for label in labels)


def is_endpoint(value: str) -> bool:
    """host:port with an IPv4 or FQDN host and a 0-65535 port"""
    if ":" not in value:
        return False
    host, port = value.rsplit(":", 1)
    if not (port.isascii() and port.isdigit()) or int(port) > 65535:
        return False
    return is_ipv4(host) or is_fqdn(host)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and INTEGER_PATTERN.match(value.strip(" ")):
        return int(value.strip(" "))
    return None


def _in_port_range(value: Any) -> bool:
    number = _as_int(value)
    return number is not None and 0 < number < 65536


def _is_script(value: Any) -> bool:
    return isinstance(value, str) and SCRIPT_PATTERN.match(value) is not None


def _is_dns_list(value: Any) -> bool:
    return isinstance(value, str) and all(is_ipv4(part.strip(" ")) for part in value.split(","))


def _is_cidr_list(value: str) -> bool:
    return all(is_cidr(part.strip(" ")) for part in value.split(","))


# ============================================================================
# Rules
# ============================================================================

def _check_peer_id(value: str, context: Optional[ValidationContext]) -> Optional[str]:
    if not UUID_PATTERN.match(value):
        return "peerId needs to follow uuid4 standards"
    return None


def _non_empty(field_name: str) -> Callable[[str, Optional[ValidationContext]], Optional[str]]:
    def check(value: str, context: Optional[ValidationContext]) -> Optional[str]:
        return None if value else f"{field_name} cannot be empty"
    return check


def _check_address(value: str, context: Optional[ValidationContext]) -> Optional[str]:
    if not is_ipv4(value):
        return "address is not IPv4"
    if context is None:
        return None

    network = context.network
    try:
        subnet = IPv4Network(network.subnet, strict=False)
    except ValueError:
        return f"network subnet {network.subnet} is not in CIDR format"
    address = IPv4Address(value)
    if address not in subnet:
        return f"address is not in subnet {network.subnet}"
    # /31 and /32 have no network or broadcast address
    if subnet.prefixlen < 31:
        if address == subnet.network_address:
            return f"address is the network address of subnet {network.subnet}"
        if address == subnet.broadcast_address:
            return f"address is the broadcast address of subnet {network.subnet}"
    for peer_id, peer in network.peers.items():
        if peer_id != context.peer_id and peer.address == value:
            return f"address is already taken by {peer.name}"
    return None


def _check_mobility(value: str, context: Optional[ValidationContext]) -> Optional[str]:
    allowed = [mobility.value for mobility in Mobility]
    if value not in allowed:
        return f"mobility must be one of: {', '.join(allowed)}"
    return None


def _check_subnet(value: str, context: Optional[ValidationContext]) -> Optional[str]:
    return None if is_cidr(value) else "subnet is not in CIDR format"


def _check_allowed_ips(value: str, context: Optional[ValidationContext]) -> Optional[str]:
    return None if _is_cidr_list(value) else "AllowedIPs is not in CIDR format"


ENDPOINT_MESSAGE = "endpoint is not IPv4 nor an FQDN"


def _endpoint_rule(field: FieldValue, context: Optional[ValidationContext]) -> ValidationResult:
    """
    Accept ``"host:port"`` or an ``{enabled, value}`` pair

    Peer.endpoint is a plain string, so an accepted pair is reported as its
    value, or ``""`` when disabled.
    """
    if isinstance(field, StringField):
        return _ok(field) if is_endpoint(field.value) else _fail(field, ENDPOINT_MESSAGE)
    if not isinstance(field, ToggleField):
        return ValidationResult(status=False, message=INVALID_FIELD_TYPE)
    if not field.enabled:
        return ValidationResult(status=True, value="")
    if not (isinstance(field.value, str) and is_endpoint(field.value)):
        return _fail(field, ENDPOINT_MESSAGE)
    return ValidationResult(status=True, value=field.value)


_script_rule = _toggle_rule(_is_script, "script needs to end with a semicolon")


def _scripts_rule(field: FieldValue, context: Optional[ValidationContext]) -> ValidationResult:
    if not isinstance(field, CompositeField):
        return ValidationResult(status=False, message=INVALID_FIELD_TYPE)
    for key in SCRIPT_KEYS:
        if key not in field.items:
            return ValidationResult(status=False, message=f"scripts must include '{key}'")
        hook = as_field_value(field.items[key])
        if hook is None:
            return ValidationResult(status=False, message=INVALID_FIELD_TYPE)
        result = _script_rule(hook, context)
        if not result.status:
            return ValidationResult(status=False, message=result.message, value=to_plain(field))
    return _ok(field)


FIELD_RULES: Dict[str, Rule] = {
    "peerId": _string_rule(_check_peer_id),
    "peer_id": _string_rule(_check_peer_id),
    "identifier": _string_rule(_non_empty("identifier")),
    "subnet": _string_rule(_check_subnet),
    "name": _string_rule(_non_empty("name")),
    "address": _string_rule(_check_address),
    "mobility": _string_rule(_check_mobility),
    "endpoint": _endpoint_rule,
    "public_key": _string_rule(_non_empty("public_key")),
    "private_key": _string_rule(_non_empty("private_key")),
    "pre_shared_key": _string_rule(_non_empty("pre_shared_key")),
    "dns": _toggle_rule(_is_dns_list, "DNS is invalid"),
    "mtu": _toggle_rule(_in_port_range, "MTU is invalid", _as_int),
    "persistent_keepalive": _toggle_rule(
        _in_port_range, "Persistent Keepalive is invalid", _as_int
    ),
    "script": _script_rule,
    "pre_up": _script_rule,
    "post_up": _script_rule,
    "pre_down": _script_rule,
    "post_down": _script_rule,
    "scripts": _scripts_rule,
    "allowed_ips_a_to_b": _string_rule(_check_allowed_ips),
    "allowed_ips_b_to_a": _string_rule(_check_allowed_ips),
}


# ============================================================================
# Public API
# ============================================================================

def validate(
    field_name: str,
    field_value: Any,
    context: Optional[ValidationContext] = None,
) -> ValidationResult:
    """
    Check one field against its grammar

    Args:
        field_name: Key in FIELD_RULES
        field_value: Raw payload or tagged FieldValue
        context: Network state for rules that need it (address)

    Returns:
        ValidationResult; never raises for bad input
    """
    rule = FIELD_RULES.get(field_name)
    if rule is None:
        return ValidationResult(status=False, message=UNKNOWN_FIELD)

    field = as_field_value(field_value)
    if field is None:
        logger.debug(f"Field {field_name} has unsupported payload type {type(field_value).__name__}")
        return ValidationResult(status=False, message=INVALID_FIELD_TYPE)

    # every value ends up on a single wg-quick config line
    if _has_line_break(field):
        logger.debug(f"Field {field_name} rejected: contains a line break")
        return _fail(field, f"{field_name} cannot contain line breaks")

    result = rule(field, context)
    if not result.status:
        logger.debug(f"Field {field_name} rejected: {result.message}")
    return result


def validate_peer(peer: Peer, network: Optional[Network] = None) -> Dict[str, str]:
    """
    Run every peer rule over a peer model

    Args:
        peer: Peer to check
        network: Network the peer belongs (or will belong) to

    Returns:
        Field name -> error message for each failing field
    """
    context = ValidationContext(network=network, peer_id=peer.id) if network is not None else None
    fields: Dict[str, Any] = {
        "peerId": peer.id,
        "name": peer.name,
        "address": peer.address,
        "mobility": peer.mobility.value,
        "private_key": peer.private_key,
        "public_key": peer.public_key,
        "dns": peer.dns,
        "mtu": peer.mtu,
        "persistent_keepalive": peer.persistent_keepalive,
        "scripts": peer.scripts,
    }
    if peer.is_static:
        fields["endpoint"] = peer.endpoint

    errors = {}
    for field_name, value in fields.items():
        result = validate(field_name, value, context)
        if not result.status:
            errors[field_name] = result.message
    return errors


def validate_connection(connection: Connection) -> Dict[str, str]:
    """Run every connection rule over a connection model"""
    fields: Dict[str, Any] = {
        "pre_shared_key": connection.pre_shared_key,
        "allowed_ips_a_to_b": connection.allowed_ips_a_to_b,
        "allowed_ips_b_to_a": connection.allowed_ips_b_to_a,
        "persistent_keepalive": connection.persistent_keepalive,
    }
    errors = {}
    for field_name, value in fields.items():
        result = validate(field_name, value)
        if not result.status:
            errors[field_name] = result.message
    return errors
