"""Run the API with uvicorn: ``python -m app``."""

import uvicorn

from app.settings import settings


def main() -> None:
	uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port, proxy_headers=True)


if __name__ == "__main__":
	main()
