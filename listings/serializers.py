"""Row to dict conversion for listings and the user summaries joined onto them."""

import json
from typing import Any, Dict, List, Mapping, Optional

def decode_images(raw: Optional[str]) -> List[str]:
    """Decode the JSON image list stored on a listing row.

    Rows written before images were serialized hold a single bare URL.
    """
    if not raw:
        return []
    try:
        images = json.loads(raw)
    except (TypeError, ValueError):
        return [raw]
    if isinstance(images, str):
        return [images]
    return [str(image) for image in images]

def encode_images(images: List[str]) -> str:
    return json.dumps(list(images))

def extract_prefixed(record: Dict[str, Any], prefix: str) -> Optional[Dict[str, Any]]:
    """Pop every `<prefix>_<field>` key out of record into a nested dict.

    Returns None when the join produced no row (all values NULL).
    """
    keys = [key for key in record if key.startswith(f"{prefix}_")]
    if not keys:
        return None
    nested = {key[len(prefix) + 1:]: record.pop(key) for key in keys}
    if all(value is None for value in nested.values()):
        return None
    return nested

def attach_summary(record: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    """Move joined `<prefix>_*` columns into record[prefix].

    `<prefix>_id` stays on the record as a plain column and is repeated as
    the summary's `id`.
    """
    ref_id = record.pop(f"{prefix}_id", None)
    nested = extract_prefixed(record, prefix)
    record[f"{prefix}_id"] = ref_id
    if nested is not None:
        if 'images' in nested:
            nested['images'] = decode_images(nested['images'])
        record[prefix] = {'id': ref_id, **nested}
    return record

def listing_from_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a listings row (optionally joined with seller_* columns) to a dict."""
    listing = dict(row)
    listing['images'] = decode_images(listing.get('images'))
    return attach_summary(listing, 'seller')

__all__ = [
    'decode_images', 'encode_images', 'extract_prefixed',
    'attach_summary', 'listing_from_row'
]
