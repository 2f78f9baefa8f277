import uvicorn

from vertex_processor.api.app import create_app
from vertex_processor.config.settings import Settings
from vertex_processor.logging.logger import Log


def main() -> None:
    """Entry point: load settings -> configure logging -> serve the API."""
    settings = Settings()
    Log.configure(settings.log_level)
    Log.info(f"Starting vertex-processor ({settings.app_env}) on port {settings.server_port}")
    app = create_app(settings)
    uvicorn.run(app, host=settings.server_host, port=settings.server_port, log_config=None)


if __name__ == "__main__":
    main()
