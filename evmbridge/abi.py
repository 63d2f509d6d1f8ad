"""Contract ABI description parsing and Solidity ABI encoding."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from evmbridge.util import keccak256


class AbiError(Exception):
    """Raised when values cannot be encoded or decoded against an ABI."""


@dataclass(frozen=True)
class _Type:
    kind: str
    size: int = 0
    elem: "_Type | None" = None
    length: int | None = None
    components: tuple["_Type", ...] = ()
    names: tuple[str, ...] = ()


def _parse(spec: str, components: Sequence[Mapping[str, Any]] | None = None) -> _Type:
    spec = spec.strip()
    try:
        if spec.endswith("]"):
            cut = spec.rindex("[")
            inner = _parse(spec[:cut], components)
            count = spec[cut + 1:-1]
            return _Type("array", elem=inner, length=int(count) if count else None)
        if spec == "tuple":
            comps = list(components or [])
            return _Type(
                "tuple",
                components=tuple(_parse(c["type"], c.get("components")) for c in comps),
                names=tuple(c.get("name", "") for c in comps),
            )
        if spec in ("address", "bool", "string", "bytes"):
            return _Type(spec)
        for prefix in ("uint", "int"):
            if spec.startswith(prefix):
                bits = int(spec[len(prefix):] or 256)
                if bits < 8 or bits > 256 or bits % 8:
                    raise AbiError(f"invalid integer size in {spec!r}")
                return _Type(prefix, size=bits)
        if spec.startswith("bytes"):
            size = int(spec[5:])
            if not 1 <= size <= 32:
                raise AbiError(f"invalid fixed bytes size in {spec!r}")
            return _Type("fixedbytes", size=size)
    except ValueError as exc:
        raise AbiError(f"unsupported type {spec!r}") from exc
    raise AbiError(f"unsupported type {spec!r}")


def _canonical(t: _Type) -> str:
    if t.kind == "array":
        suffix = "" if t.length is None else str(t.length)
        return f"{_canonical(t.elem)}[{suffix}]"
    if t.kind == "tuple":
        return "(" + ",".join(_canonical(c) for c in t.components) + ")"
    if t.kind in ("uint", "int"):
        return f"{t.kind}{t.size}"
    if t.kind == "fixedbytes":
        return f"bytes{t.size}"
    return t.kind


def _is_dynamic(t: _Type) -> bool:
    if t.kind in ("bytes", "string"):
        return True
    if t.kind == "array":
        return t.length is None or _is_dynamic(t.elem)
    if t.kind == "tuple":
        return any(_is_dynamic(c) for c in t.components)
    return False


def _static_size(t: _Type) -> int:
    if t.kind == "array":
        return t.length * _static_size(t.elem)
    if t.kind == "tuple":
        return sum(_static_size(c) for c in t.components)
    return 32


def _word(value: int) -> bytes:
    return value.to_bytes(32, "big")


def _pad(data: bytes) -> bytes:
    return data + bytes((32 - len(data) % 32) % 32)


def _address_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        text = value[2:] if value.lower().startswith("0x") else value
        raw = bytes.fromhex(text)
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise AbiError(f"cannot use {type(value).__name__} as address")
    if len(raw) != 20:
        raise AbiError("address must be 20 bytes")
    return raw


def _tuple_values(t: _Type, value: Any) -> list[Any]:
    if isinstance(value, Mapping):
        return [value[name] for name in t.names]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return list(dataclasses.astuple(value))
    if isinstance(value, (list, tuple)):
        return list(value)
    raise AbiError(f"cannot use {type(value).__name__} as tuple")


def _encode_value(t: _Type, value: Any) -> bytes:
    kind = t.kind
    if kind in ("uint", "int"):
        if not isinstance(value, int) or isinstance(value, bool):
            raise AbiError(f"expected integer for {_canonical(t)}")
        if kind == "uint":
            if not 0 <= value < 1 << t.size:
                raise AbiError(f"value {value} out of range for {_canonical(t)}")
            return _word(value)
        bound = 1 << (t.size - 1)
        if not -bound <= value < bound:
            raise AbiError(f"value {value} out of range for {_canonical(t)}")
        return _word(value % (1 << 256))
    if kind == "address":
        return _address_bytes(value).rjust(32, b"\x00")
    if kind == "bool":
        if not isinstance(value, bool):
            raise AbiError("expected bool")
        return _word(int(value))
    if kind == "fixedbytes":
        if not isinstance(value, (bytes, bytearray)) or len(value) != t.size:
            raise AbiError(f"expected {t.size} bytes for bytes{t.size}")
        return bytes(value).ljust(32, b"\x00")
    if kind in ("bytes", "string"):
        if kind == "string":
            if not isinstance(value, str):
                raise AbiError("expected str for string")
            raw = value.encode()
        else:
            if not isinstance(value, (bytes, bytearray)):
                raise AbiError("expected bytes for bytes")
            raw = bytes(value)
        return _word(len(raw)) + _pad(raw)
    if kind == "array":
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            raise AbiError("expected a sequence for array")
        items = list(value)
        if t.length is not None and len(items) != t.length:
            raise AbiError(f"expected {t.length} array elements, got {len(items)}")
        body = _encode_tuple([t.elem] * len(items), items)
        return body if t.length is not None else _word(len(items)) + body
    values = _tuple_values(t, value)
    if len(values) != len(t.components):
        raise AbiError("wrong number of tuple fields")
    return _encode_tuple(list(t.components), values)


def _encode_tuple(types: Sequence[_Type], values: Sequence[Any]) -> bytes:
    head_size = sum(32 if _is_dynamic(t) else _static_size(t) for t in types)
    heads: list[bytes] = []
    tails: list[bytes] = []
    tail_len = 0
    for t, value in zip(types, values):
        encoded = _encode_value(t, value)
        if _is_dynamic(t):
            heads.append(_word(head_size + tail_len))
            tails.append(encoded)
            tail_len += len(encoded)
        else:
            heads.append(encoded)
    return b"".join(heads) + b"".join(tails)


def _read_word(data: bytes, pos: int) -> bytes:
    if pos < 0 or pos + 32 > len(data):
        raise AbiError("data too short")
    return data[pos:pos + 32]


def _decode_value(t: _Type, data: bytes, pos: int) -> Any:
    kind = t.kind
    if kind in ("uint", "int"):
        value = int.from_bytes(_read_word(data, pos), "big")
        if kind == "int" and value >= 1 << 255:
            value -= 1 << 256
        low, high = (0, 1 << t.size) if kind == "uint" else (-(1 << (t.size - 1)), 1 << (t.size - 1))
        if not low <= value < high:
            raise AbiError(f"value out of range for {_canonical(t)}")
        return value
    if kind == "address":
        return "0x" + _read_word(data, pos)[12:].hex()
    if kind == "bool":
        value = int.from_bytes(_read_word(data, pos), "big")
        if value not in (0, 1):
            raise AbiError("improperly encoded boolean value")
        return value == 1
    if kind == "fixedbytes":
        return _read_word(data, pos)[:t.size]
    if kind in ("bytes", "string"):
        size = int.from_bytes(_read_word(data, pos), "big")
        start = pos + 32
        if start + size > len(data):
            raise AbiError("data too short")
        raw = data[start:start + size]
        return raw.decode("utf-8", errors="replace") if kind == "string" else raw
    if kind == "array":
        if t.length is None:
            count = int.from_bytes(_read_word(data, pos), "big")
            start = pos + 32
        else:
            count, start = t.length, pos
        if count > len(data):
            raise AbiError("array length exceeds data")
        return _decode_tuple([t.elem] * count, data, start)
    return tuple(_decode_tuple(list(t.components), data, pos))


def _decode_tuple(types: Sequence[_Type], data: bytes, base: int) -> list[Any]:
    out = []
    head = base
    for t in types:
        if _is_dynamic(t):
            offset = int.from_bytes(_read_word(data, head), "big")
            if base + offset > len(data):
                raise AbiError("offset exceeds data")
            out.append(_decode_value(t, data, base + offset))
            head += 32
        else:
            out.append(_decode_value(t, data, head))
            head += _static_size(t)
    return out


def encode(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """ABI-encode ``values`` as a tuple of the given type strings."""
    parsed = [_parse(t) for t in types]
    if len(parsed) != len(values):
        raise AbiError(f"argument count mismatch: got {len(values)} for {len(parsed)}")
    try:
        return _encode_tuple(parsed, list(values))
    except (ValueError, TypeError, KeyError) as exc:
        raise AbiError(str(exc)) from exc


def decode(types: Sequence[str], data: bytes) -> list[Any]:
    """Decode ABI-encoded ``data`` as a tuple of the given type strings."""
    return _decode_tuple([_parse(t) for t in types], bytes(data), 0)


@dataclass(frozen=True)
class _Function:
    name: str
    inputs: tuple[_Type, ...]
    outputs: tuple[_Type, ...]
    selector: bytes


@dataclass(frozen=True)
class _Event:
    name: str
    inputs: tuple[_Type, ...]
    names: tuple[str, ...]
    indexed: tuple[bool, ...]


def _params(entries: Sequence[Mapping[str, Any]]) -> tuple[_Type, ...]:
    return tuple(_parse(e["type"], e.get("components")) for e in entries)


class Abi:
    """A contract interface: its functions, constructor and events."""

    def __init__(
        self,
        functions: dict[str, _Function],
        events: dict[str, _Event],
        constructor: tuple[_Type, ...] = (),
    ) -> None:
        self.functions = functions
        self.events = events
        self.constructor = constructor

    @classmethod
    def from_json(cls, text: str | Sequence[Mapping[str, Any]]) -> "Abi":
        """Build an ABI from its JSON description."""
        try:
            entries = json.loads(text) if isinstance(text, str) else list(text)
        except json.JSONDecodeError as exc:
            raise AbiError(f"invalid ABI JSON: {exc}") from exc
        functions: dict[str, _Function] = {}
        events: dict[str, _Event] = {}
        constructor: tuple[_Type, ...] = ()
        for entry in entries:
            kind = entry.get("type", "function")
            inputs = entry.get("inputs", [])
            if kind == "constructor":
                constructor = _params(inputs)
            elif kind == "function":
                types = _params(inputs)
                name = entry["name"]
                signature = name + "(" + ",".join(_canonical(t) for t in types) + ")"
                key, counter = name, 0
                while key in functions:
                    key = f"{name}{counter}"
                    counter += 1
                functions[key] = _Function(
                    name, types, _params(entry.get("outputs", [])), keccak256(signature)[:4]
                )
            elif kind == "event":
                events[entry["name"]] = _Event(
                    entry["name"],
                    _params(inputs),
                    tuple(i.get("name", "") for i in inputs),
                    tuple(bool(i.get("indexed")) for i in inputs),
                )
        return cls(functions, events, constructor)

    def _function(self, method: str) -> _Function:
        try:
            return self.functions[method]
        except KeyError:
            raise AbiError(f"method '{method}' not found") from None

    def pack(self, method: str, *args: Any) -> bytes:
        """Encode a call of ``method``; the empty name packs constructor arguments."""
        if method == "":
            types, prefix = self.constructor, b""
        else:
            function = self._function(method)
            types, prefix = function.inputs, function.selector
        if len(args) != len(types):
            raise AbiError(f"argument count mismatch: got {len(args)} for {len(types)}")
        try:
            return prefix + _encode_tuple(list(types), list(args))
        except (ValueError, TypeError, KeyError) as exc:
            raise AbiError(str(exc)) from exc

    def unpack(self, method: str, data: bytes) -> list[Any]:
        """Decode the return values of ``method``."""
        function = self._function(method)
        data = bytes(data)
        if len(data) % 32:
            raise AbiError(f"improperly formatted output: {data!r}")
        if not data and function.outputs:
            raise AbiError("attempting to unmarshall an empty string while arguments are expected")
        return _decode_tuple(list(function.outputs), data, 0)

    def unpack_event(self, name: str, data: bytes) -> dict[str, Any]:
        """Decode the non-indexed fields of event ``name`` into a dict by name."""
        try:
            event = self.events[name]
        except KeyError:
            raise AbiError(f"event '{name}' not found") from None
        fields = [(n, t) for n, t, ix in zip(event.names, event.inputs, event.indexed) if not ix]
        values = _decode_tuple([t for _, t in fields], bytes(data), 0)
        return {n: v for (n, _), v in zip(fields, values)}