"""
Run the admin auth API with uvicorn.

    python -m swordfighters_admin
    swordfighters-admin
"""

import uvicorn

from swordfighters_admin.core.config import settings


def main() -> None:
    uvicorn.run(
        "swordfighters_admin.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_config=None,
    )


if __name__ == "__main__":
    main()
