from fastapi import FastAPI

from sop_compiler.api.routes import router
from sop_compiler.config.settings import Settings, load_settings


def create_app(settings: Settings | None = None, config_path: str | None = None) -> FastAPI:
    app = FastAPI(title="SOP Workflow Compiler")
    app.include_router(router)
    app.state.settings = settings or load_settings(config_path)
    return app
