"""Run the gateway with uvicorn: ``python -m authgate``."""

import uvicorn


def main() -> None:
    uvicorn.run("authgate.asgi:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
