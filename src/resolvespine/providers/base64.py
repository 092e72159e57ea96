"""Built-in ``base64`` provider: ``encode`` and ``decode`` strings.

``$params`` is either the string itself or ``{input: <string>}``; the result
is written to ``$returns``.
"""

from __future__ import annotations

import base64
from typing import Any

from pydantic import field_validator

from resolvespine.core.context import CallContext
from resolvespine.runtime.package import InternalPackage
from resolvespine.runtime.provider import LocalProviderFn, Params, Returns

PROVIDER_NAME = "base64"

TEMPLATE = """\
# $params: string | {input: string}
# $returns: string
"#Encode":
  $do: encode
  $provider: base64

"#Decode":
  $do: decode
  $provider: base64
"""


class Base64Params(Params[str]):
    @field_validator("params", mode="before")
    @classmethod
    def _unwrap_input(cls, value: Any) -> Any:
        if isinstance(value, dict) and "input" in value:
            return value["input"]
        return value


class Base64Returns(Returns[str]):
    pass


def encode(ctx: CallContext, params: Base64Params) -> Base64Returns:
    return Base64Returns(returns=base64.b64encode(params.params.encode("utf-8")).decode("ascii"))


def decode(ctx: CallContext, params: Base64Params) -> Base64Returns:
    """Raises ``binascii.Error`` on invalid input, ``UnicodeDecodeError`` on non-UTF-8 output."""
    return Base64Returns(returns=base64.b64decode(params.params, validate=True).decode("utf-8"))


package = InternalPackage(
    PROVIDER_NAME,
    TEMPLATE,
    {
        "encode": LocalProviderFn.from_handler(encode),
        "decode": LocalProviderFn.from_handler(decode),
    },
)

__all__ = ["PROVIDER_NAME", "Base64Params", "Base64Returns", "decode", "encode", "package"]
