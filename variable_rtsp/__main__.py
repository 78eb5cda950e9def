"""Allow ``python -m variable_rtsp`` to launch the server."""

from variable_rtsp.app.server import main

if __name__ == "__main__":
    main()
