"""Entry point for running the snappwd service."""

import uvicorn
from snappwd.app import app, settings


def main():
    # Access log lines carry the full request path, identifiers included;
    # request_middleware logs a redacted route instead
    uvicorn.run(app, host="0.0.0.0", port=settings.port, access_log=False)


if __name__ == "__main__":
    main()
