"""Run the API with uvicorn: ``python -m bardeals``."""

import uvicorn

from .main import app


def main() -> None:
    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
