import uvicorn

from country_sync.config import Settings


def main() -> None:
    settings = Settings()
    uvicorn.run("country_sync.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
