"""
Chain persistence.

Chains are written as a plain document (order, kind and the transition
table as a list of node/link records) in one of several formats picked by
file extension:

- .json          UTF-8 JSON
- .yaml / .yml   YAML
- .pkl / .pickle pickle

The boundary marker is stored as null, so tokens must be non-null scalars.
"""
from __future__ import annotations

import json
import logging
import pickle
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple, Union

import yaml

from markov_chain.services.chain import BOUNDARY, Chain
from markov_chain.services.text_chain import TextChain

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

# Token types that survive every format unchanged
_SCALAR_TYPES = (str, int, float, bool)

_KINDS: Dict[str, type] = {
    "generic": Chain,
    "text": TextChain,
}


class UnknownFormatError(ValueError):
    """Raised when no format is registered for a file extension."""


class ChainEncodeError(ValueError):
    """Raised when a chain holds tokens that cannot be serialized."""


class ChainDecodeError(ValueError):
    """Raised when persisted chain data is malformed."""


@dataclass(frozen=True)
class ChainFormat:
    """A serialization format and the file extensions that select it."""
    name: str
    extensions: Tuple[str, ...]
    description: str
    media_type: str
    dumps: Callable[[Dict[str, Any]], bytes]
    loads: Callable[[bytes], Any]


def _json_dumps(doc: Dict[str, Any]) -> bytes:
    return json.dumps(doc, ensure_ascii=False).encode("utf-8")


def _json_loads(data: bytes) -> Any:
    return json.loads(data.decode("utf-8"))


def _yaml_dumps(doc: Dict[str, Any]) -> bytes:
    return yaml.safe_dump(doc, allow_unicode=True, sort_keys=False).encode("utf-8")


def _yaml_loads(data: bytes) -> Any:
    return yaml.safe_load(data.decode("utf-8"))


def _pickle_dumps(doc: Dict[str, Any]) -> bytes:
    return pickle.dumps(doc, protocol=pickle.HIGHEST_PROTOCOL)


FORMATS: Dict[str, ChainFormat] = {
    fmt.name: fmt
    for fmt in (
        ChainFormat("json", ("json",), "JSON, JavaScript Object Notation",
                    "application/json", _json_dumps, _json_loads),
        ChainFormat("yaml", ("yaml", "yml"), "YAML, YAML Ain't Markup Language",
                    "application/yaml", _yaml_dumps, _yaml_loads),
        ChainFormat("pickle", ("pkl", "pickle"), "Python pickle (binary)",
                    "application/octet-stream", _pickle_dumps, pickle.loads),
    )
}

_EXTENSIONS: Dict[str, ChainFormat] = {
    ext: fmt for fmt in FORMATS.values() for ext in fmt.extensions
}


def available_formats() -> List[ChainFormat]:
    return list(FORMATS.values())


def known_extensions() -> List[str]:
    return list(_EXTENSIONS)


def is_chain_path(path: Union[str, Path]) -> bool:
    """Whether a path has an extension registered for chain files."""
    return Path(path).suffix.lstrip(".").lower() in _EXTENSIONS


def format_for_path(path: Union[str, Path]) -> ChainFormat:
    """
    Pick the format for a file by its extension.

    Raises:
        UnknownFormatError: if the extension is missing or not registered
    """
    ext = Path(path).suffix.lstrip(".").lower()
    fmt = _EXTENSIONS.get(ext)
    if fmt is None:
        raise UnknownFormatError(
            f"no known strategy to read file `{path}`. "
            f"Known extensions: {' '.join(known_extensions())}"
        )
    return fmt


def get_format(fmt: Union[str, ChainFormat]) -> ChainFormat:
    if isinstance(fmt, ChainFormat):
        return fmt
    found = FORMATS.get(fmt) or _EXTENSIONS.get(fmt)
    if found is None:
        raise UnknownFormatError(f"unknown chain format: {fmt}")
    return found


# --- document conversion ---
def _encode_slot(item: Any) -> Any:
    if item is BOUNDARY:
        return None
    if item is None or not isinstance(item, _SCALAR_TYPES):
        raise ChainEncodeError(f"cannot serialize token {item!r} of type {type(item).__name__}")
    return item


def _decode_slot(item: Any) -> Any:
    if item is None:
        return BOUNDARY
    if not isinstance(item, _SCALAR_TYPES):
        raise ChainDecodeError(f"invalid token {item!r}")
    return item


def _check_text_slots(slots: Tuple[Any, ...]):
    for item in slots:
        if item is not BOUNDARY and not isinstance(item, str):
            raise ChainDecodeError(f"text chain holds non-string token {item!r}")


def chain_to_document(chain: Chain) -> Dict[str, Any]:
    """Convert a chain into a plain, format-neutral document."""
    kind = "text" if isinstance(chain, TextChain) else "generic"
    records = []
    for node, link in chain.transitions.items():
        records.append({
            "node": [_encode_slot(item) for item in node],
            "links": [[_encode_slot(next_item), weight] for next_item, weight in link.items()],
        })
    return {
        "format_version": FORMAT_VERSION,
        "kind": kind,
        "order": chain.order,
        "chain": records,
    }


def chain_from_document(doc: Any) -> Chain:
    """
    Rebuild a chain from a document produced by chain_to_document().

    Raises:
        ChainDecodeError: on any structural problem
    """
    if not isinstance(doc, dict):
        raise ChainDecodeError("chain document must be a mapping")

    version = doc.get("format_version")
    if version != FORMAT_VERSION:
        raise ChainDecodeError(f"unsupported format version: {version!r}")

    kind = doc.get("kind", "generic")
    chain_cls = _KINDS.get(kind)
    if chain_cls is None:
        raise ChainDecodeError(f"unknown chain kind: {kind!r}")

    order = doc.get("order")
    if isinstance(order, bool) or not isinstance(order, int) or order < 1:
        raise ChainDecodeError(f"invalid order: {order!r}")

    records = doc.get("chain")
    if not isinstance(records, list):
        raise ChainDecodeError("missing transition table")

    chain = chain_cls(order)
    for record in records:
        try:
            raw_node = record["node"]
            raw_links = record["links"]
        except (KeyError, TypeError) as e:
            raise ChainDecodeError(f"malformed node record: {record!r}") from e

        if not isinstance(raw_node, list) or len(raw_node) != order:
            raise ChainDecodeError(f"node {raw_node!r} does not match order {order}")
        if not isinstance(raw_links, list):
            raise ChainDecodeError(f"malformed links for node {raw_node!r}")

        node = tuple(_decode_slot(item) for item in raw_node)
        if chain_cls is TextChain:
            _check_text_slots(node)
        for pair in raw_links:
            if not isinstance(pair, list) or len(pair) != 2:
                raise ChainDecodeError(f"malformed link {pair!r}")
            next_item, weight = pair
            if isinstance(weight, bool) or not isinstance(weight, int) or weight < 1:
                raise ChainDecodeError(f"invalid weight {weight!r}")
            next_slot = _decode_slot(next_item)
            if chain_cls is TextChain:
                _check_text_slots((next_slot,))
            chain._update_link_weight(node, next_slot, weight)

    return chain


# --- bytes ---
def encode(chain: Chain, fmt: Union[str, ChainFormat] = "json") -> bytes:
    """Serialize a chain in the given format."""
    return get_format(fmt).dumps(chain_to_document(chain))


def decode(data: bytes, fmt: Union[str, ChainFormat] = "json") -> Chain:
    """
    Deserialize a chain from bytes.

    Raises:
        ChainDecodeError: if the data cannot be parsed or is malformed
    """
    chain_format = get_format(fmt)
    try:
        doc = chain_format.loads(data)
    except Exception as e:
        raise ChainDecodeError(f"could not read {chain_format.name} data: {e}") from e
    return chain_from_document(doc)


# --- files ---
def save_chain(chain: Chain, path: Union[str, Path]):
    """Write a chain to a file, picking the format from its extension."""
    path = Path(path)
    data = encode(chain, format_for_path(path))
    with path.open("wb") as f:
        f.write(data)
    logger.info(f"[Chain] Saved {path} ({len(chain)} nodes, order {chain.order})")


def load_chain(path: Union[str, Path]) -> Chain:
    """Read a chain from a file, picking the format from its extension."""
    path = Path(path)
    fmt = format_for_path(path)
    with path.open("rb") as f:
        data = f.read()
    chain = decode(data, fmt)
    logger.info(f"[Chain] Loaded {path} ({len(chain)} nodes, order {chain.order})")
    return chain
