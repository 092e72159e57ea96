"""Built-in ``patch`` provider: strategic merge of two values.

``$params: {value, patch}`` resolves to ``$returns``, which is ``value`` with
``patch`` applied:

- mappings merge key by key; a ``null`` in the patch removes the key
- lists whose items are all mappings with a ``name`` key merge item by item
  on ``name`` (unmatched patch items are appended)
- any other value in the patch replaces the original
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from resolvespine.core.context import CallContext
from resolvespine.document.document import PARAMS_KEY, RETURNS_KEY
from resolvespine.runtime.package import InternalPackage
from resolvespine.runtime.provider import NativeProviderFn

PROVIDER_NAME = "patch"
MERGE_KEY = "name"

TEMPLATE = """\
# $params: {value: any, patch: any}
# $returns: any
"#StrategicMerge":
  $do: strategicMerge
  $provider: patch
"""


def _named_list(items: Any) -> bool:
    return isinstance(items, list) and all(isinstance(i, Mapping) and MERGE_KEY in i for i in items)


def strategic_merge(value: Any, patch: Any) -> Any:
    if isinstance(value, Mapping) and isinstance(patch, Mapping):
        out = dict(value)
        for key, item in patch.items():
            if item is None:
                out.pop(key, None)
            elif key in out:
                out[key] = strategic_merge(out[key], item)
            else:
                out[key] = copy.deepcopy(item)
        return out
    if _named_list(value) and _named_list(patch):
        out_list = [dict(i) for i in value]
        index = {item[MERGE_KEY]: pos for pos, item in enumerate(out_list)}
        for item in patch:
            pos = index.get(item[MERGE_KEY])
            if pos is None:
                index[item[MERGE_KEY]] = len(out_list)
                out_list.append(copy.deepcopy(item))
            else:
                out_list[pos] = strategic_merge(out_list[pos], item)
        return out_list
    return copy.deepcopy(patch)


def strategic_merge_fn(ctx: CallContext, value: Any) -> Any:
    params = value.get(PARAMS_KEY)
    if not isinstance(params, Mapping) or "value" not in params:
        raise ValueError(f"{PARAMS_KEY}.value is required")
    return {RETURNS_KEY: strategic_merge(params["value"], params.get("patch"))}


package = InternalPackage(PROVIDER_NAME, TEMPLATE, {"strategicMerge": NativeProviderFn(strategic_merge_fn)})

__all__ = ["PROVIDER_NAME", "package", "strategic_merge", "strategic_merge_fn"]
