"""Run the API server: python -m questlearn"""

import uvicorn

from questlearn.core.config import settings


def main():
    uvicorn.run("questlearn.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    main()
