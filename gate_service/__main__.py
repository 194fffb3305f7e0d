# =======================================================================================
# gate_service/__main__.py - Development Server Launcher
# =======================================================================================
import uvicorn
from .config import config


def main():
    uvicorn.run(
        "gate_service.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=config.API_DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
