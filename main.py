"""
Gateway main entry point.
Serves the hospitals API with uvicorn.
"""

import uvicorn
from loguru import logger

from gateway.app import create_app
from gateway.settings import global_settings

app = create_app()


def main() -> None:
    logger.info(
        f"Server running on http://{global_settings.host}:{global_settings.port}"
    )
    uvicorn.run(app, host=global_settings.host, port=global_settings.port)


if __name__ == "__main__":
    main()
