"""
Run the gateway with uvicorn
"""

import uvicorn

from auth_gateway.config import get_settings


def main():
    settings = get_settings()
    uvicorn.run(
        "auth_gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
