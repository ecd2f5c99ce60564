from __future__ import annotations

import uvicorn

from .core import config


def main() -> None:
    uvicorn.run("posts_api.main:app", host="0.0.0.0", port=config.get_port())


if __name__ == "__main__":
    main()
