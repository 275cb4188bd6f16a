import logging
import sys

import uvicorn

from src.config import settings


def main():
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    uvicorn.run("src.app:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
