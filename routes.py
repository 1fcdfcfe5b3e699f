# routes.py
from fastapi import FastAPI
from controller.batch_controller import batch_router
from controller.config_controller import config_router
from controller.key_controller import key_router
from controller.llm_controller import llm_router
from controller.prompt_controller import prompt_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(config_router)
    app.include_router(llm_router)
    app.include_router(batch_router)
    app.include_router(prompt_router)
    app.include_router(key_router)
