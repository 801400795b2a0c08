from __future__ import annotations

import json
import logging
import os
from typing import Sequence

from .packet import Packet

ERROR_LOG_FORMAT = "%(asctime)s: %(message)s"


def packets_to_json(packets: Sequence[Packet], indent: int | None = 2) -> str:
    return json.dumps([p.to_dict() for p in packets], indent=indent)


def write_json(packets: Sequence[Packet], path: str | os.PathLike[str], indent: int | None = 2) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(packets_to_json(packets, indent=indent))
        f.write("\n")


def attach_error_log(path: str | os.PathLike[str], logger: logging.Logger | None = None) -> logging.Handler:
    """Append WARNING and above to ``path`` as a timestamped error trail."""
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(ERROR_LOG_FORMAT))
    (logger or logging.getLogger()).addHandler(handler)
    return handler
