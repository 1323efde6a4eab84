from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Any, Literal, cast

from .errors import UntypeableValueError, ValidationError

type WireType = Literal["S", "N", "SS", "NS"]

WIRE_TYPES: frozenset[str] = frozenset({"S", "N", "SS", "NS"})

# Native keys whose subtrees hold attribute values in request bodies.
DEFAULT_VALUE_KEYS: frozenset[str] = frozenset({"item", "hash_key_element", "range_key_element", "id"})

# Wire keys whose subtrees hold attribute values in response bodies.
WIRE_VALUE_KEYS: frozenset[str] = frozenset(
    {"Item", "Items", "Attributes", "HashKeyElement", "RangeKeyElement", "Id"}
)

# Maps keyed by table name; the table names themselves are never renamed.
DEFAULT_TABLE_KEYS: frozenset[str] = frozenset(
    {"request_items", "responses", "unprocessed_items", "unprocessed_keys"}
)
WIRE_TABLE_KEYS: frozenset[str] = frozenset({"RequestItems", "Responses", "UnprocessedItems", "UnprocessedKeys"})

# Value keys whose subtrees are whole items (attribute maps), never single values.
DEFAULT_ITEM_KEYS: frozenset[str] = frozenset({"item"})
WIRE_ITEM_KEYS: frozenset[str] = frozenset({"Item", "Items", "Attributes"})

_SEPARATORS = re.compile(r"[-_]+")
_WORD_START = re.compile(r"(?<!^)(?=[A-Z])")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _format_number(value: Any) -> str:
    if isinstance(value, float):
        number = Decimal(repr(value))
    else:
        number = Decimal(value)
    if not number.is_finite():
        raise UntypeableValueError(value)
    return str(number)


def _parse_number(raw: Any) -> Decimal:
    if not isinstance(raw, str):
        raise ValidationError(f"number attribute value must be a string: {raw!r}")
    try:
        return Decimal(raw)
    except InvalidOperation as err:
        raise ValidationError(f"invalid number attribute value: {raw!r}") from err


def infer_type(value: Any) -> WireType:
    if isinstance(value, str):
        return "S"
    if _is_number(value):
        return "N"
    if isinstance(value, (set, frozenset)) and value:
        if all(isinstance(v, str) for v in value):
            return "SS"
        if all(_is_number(v) for v in value):
            return "NS"
    raise UntypeableValueError(value)


def is_attribute_value(value: Any) -> bool:
    if not isinstance(value, Mapping) or len(value) != 1:
        return False
    ((tag, raw),) = value.items()
    if tag in {"S", "N"}:
        return isinstance(raw, str)
    if tag in {"SS", "NS"}:
        return isinstance(raw, (list, tuple)) and all(isinstance(v, str) for v in raw)
    return False


def is_native_value(value: Any) -> bool:
    return isinstance(value, (str, set, frozenset)) or _is_number(value)


@dataclass(frozen=True)
class AttributeValue:
    tag: WireType
    value: str | tuple[str, ...]

    @staticmethod
    def of(value: Any) -> AttributeValue:
        tag = infer_type(value)
        if tag == "S":
            return AttributeValue(tag="S", value=value)
        if tag == "N":
            return AttributeValue(tag="N", value=_format_number(value))
        if tag == "SS":
            return AttributeValue(tag="SS", value=tuple(sorted(value)))
        if tag == "NS":
            return AttributeValue(tag="NS", value=tuple(sorted((_format_number(v) for v in value), key=Decimal)))
        raise UntypeableValueError(value)  # pragma: no cover

    @staticmethod
    def from_wire(av: Any) -> AttributeValue:
        if not isinstance(av, Mapping):
            raise ValidationError("attribute value must be a map")
        if len(av) != 1:
            raise ValidationError("attribute value must have exactly one type key")

        ((tag, raw),) = av.items()
        if tag not in WIRE_TYPES:
            raise ValidationError(f"unsupported attribute value type: {tag}")

        if tag in {"S", "N"}:
            if not isinstance(raw, str):
                raise ValidationError(f"{tag} attribute value must be a string")
            return AttributeValue(tag=cast(WireType, tag), value=raw)

        if not isinstance(raw, (list, tuple)) or not all(isinstance(v, str) for v in raw):
            raise ValidationError(f"{tag} attribute value must be a list of strings")
        return AttributeValue(tag=cast(WireType, tag), value=tuple(raw))

    def to_wire(self) -> dict[str, Any]:
        if isinstance(self.value, tuple):
            return {self.tag: list(self.value)}
        return {self.tag: self.value}

    def to_native(self) -> Any:
        if self.tag == "S":
            return self.value
        if self.tag == "N":
            return _parse_number(self.value)
        if self.tag == "SS":
            return set(self.value)
        if self.tag == "NS":
            return {_parse_number(v) for v in self.value}
        raise ValidationError(f"unsupported attribute value type: {self.tag}")  # pragma: no cover


def to_attribute_value(value: Any) -> dict[str, Any]:
    return AttributeValue.of(value).to_wire()


def from_attribute_value(av: Any) -> Any:
    return AttributeValue.from_wire(av).to_native()


def to_camel_case(key: str) -> str:
    if key.startswith("_"):
        return key
    parts = [p for p in _SEPARATORS.split(key.lstrip(":")) if p]
    return "".join(p[:1].upper() + p[1:] for p in parts)


def to_native_key(key: str, separator: str = "_") -> str:
    if key.startswith("_"):
        return key
    return _WORD_START.sub(separator, key).lower()


def _never(_: Any) -> bool:
    return False


def _same(key: str) -> str:
    return key


def _snake_key(key: str) -> str:
    return _SEPARATORS.sub("_", key.lstrip(":"))


@dataclass(frozen=True)
class TreeRewriter:
    rename_key: Callable[[str], str]
    convert_value: Callable[[Any], Any]
    value_keys: frozenset[str]
    table_keys: frozenset[str] = field(default_factory=frozenset)
    item_keys: frozenset[str] = field(default_factory=frozenset)
    stop: Callable[[Any], bool] = _never
    # maps a body key onto the spelling used in value_keys, table_keys and item_keys
    match_key: Callable[[str], str] = _same

    def rewrite(self, node: Any) -> Any:
        if self.stop(node):
            return node
        if isinstance(node, Mapping):
            return {self.rename_key(k): self._rewrite_entry(k, v) for k, v in node.items()}
        if isinstance(node, (list, tuple)):
            return [self.rewrite(v) for v in node]
        return node

    def convert(self, value: Any) -> Any:
        if self.stop(value):
            return value
        if isinstance(value, Mapping) and not is_attribute_value(value):
            return self.convert_item(value)
        if isinstance(value, (list, tuple)):
            return [self.convert(v) for v in value]
        return self.convert_value(value)

    def convert_item(self, item: Mapping[str, Any]) -> dict[str, Any]:
        # attribute names are user data and stay as they are, even "S" or "N"
        return {name: self._convert_leaf(v) for name, v in item.items()}

    def _convert_items(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return self.convert_item(value)
        if isinstance(value, (list, tuple)):
            return [self._convert_items(v) for v in value]
        return self.convert(value)

    def _rewrite_entry(self, key: str, value: Any) -> Any:
        matched = self.match_key(key)
        if matched in self.value_keys:
            if matched in self.item_keys:
                return self._convert_items(value)
            return self.convert(value)
        if matched in self.table_keys and isinstance(value, Mapping):
            return {table: self.rewrite(v) for table, v in value.items()}
        return self.rewrite(value)

    def _convert_leaf(self, value: Any) -> Any:
        if self.stop(value):
            return value
        return self.convert_value(value)


def wire_rewriter(
    value_keys: Iterable[str] = DEFAULT_VALUE_KEYS,
    *,
    table_keys: Iterable[str] = DEFAULT_TABLE_KEYS,
    item_keys: Iterable[str] = DEFAULT_ITEM_KEYS,
    stop: Callable[[Any], bool] = is_attribute_value,
) -> TreeRewriter:
    return TreeRewriter(
        rename_key=to_camel_case,
        convert_value=to_attribute_value,
        value_keys=frozenset(value_keys),
        table_keys=frozenset(table_keys),
        item_keys=frozenset(item_keys),
        stop=stop,
        match_key=_snake_key,
    )


def native_rewriter(
    value_keys: Iterable[str] = WIRE_VALUE_KEYS,
    *,
    table_keys: Iterable[str] = WIRE_TABLE_KEYS,
    item_keys: Iterable[str] = WIRE_ITEM_KEYS,
    stop: Callable[[Any], bool] = is_native_value,
    separator: str = "_",
) -> TreeRewriter:
    return TreeRewriter(
        rename_key=partial(to_native_key, separator=separator),
        convert_value=from_attribute_value,
        value_keys=frozenset(value_keys),
        table_keys=frozenset(table_keys),
        item_keys=frozenset(item_keys),
        stop=stop,
    )


def to_wire(
    body: Any,
    value_keys: Iterable[str] = DEFAULT_VALUE_KEYS,
    *,
    table_keys: Iterable[str] = DEFAULT_TABLE_KEYS,
    item_keys: Iterable[str] = DEFAULT_ITEM_KEYS,
    stop: Callable[[Any], bool] = is_attribute_value,
) -> Any:
    return wire_rewriter(value_keys, table_keys=table_keys, item_keys=item_keys, stop=stop).rewrite(body)


# Native keys come back snake_case; pass separator="-" to get dashed keys back.
def from_wire(
    body: Any,
    value_keys: Iterable[str] = WIRE_VALUE_KEYS,
    *,
    table_keys: Iterable[str] = WIRE_TABLE_KEYS,
    item_keys: Iterable[str] = WIRE_ITEM_KEYS,
    stop: Callable[[Any], bool] = is_native_value,
    separator: str = "_",
) -> Any:
    rewriter = native_rewriter(value_keys, table_keys=table_keys, item_keys=item_keys, stop=stop, separator=separator)
    return rewriter.rewrite(body)


def marshal_item(item: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(item, Mapping):
        raise ValidationError("item must be a mapping")
    return wire_rewriter().convert_item(item)


def unmarshal_item(item: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(item, Mapping):
        raise ValidationError("item must be a mapping")
    return native_rewriter().convert_item(item)
