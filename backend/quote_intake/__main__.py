import uvicorn

from quote_intake.core.config import settings


def main() -> None:
    uvicorn.run(
        "quote_intake.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
