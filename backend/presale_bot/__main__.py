"""
Process entry point

    python -m presale_bot

Binds to $PORT (default 3000), matching the hosting platform convention.
"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "presale_bot.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )


if __name__ == "__main__":
    main()
