"""Run the front end with uvicorn: ``python -m payfrontend``."""

import uvicorn

from payfrontend.http.settings import AppSettings


def main():
    settings = AppSettings.from_env()
    uvicorn.run(
        "payfrontend.app:app",
        host="0.0.0.0",  # noqa: S104
        port=settings.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    main()
