from fastapi import Depends, Request

from .container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Application container not initialised.")
    return container


def get_settings(container: ApplicationContainer = Depends(get_container)):
    return container.settings


def get_user_service(container: ApplicationContainer = Depends(get_container)):
    return container.user_service


def get_token_provider(container: ApplicationContainer = Depends(get_container)):
    return container.token_provider


def get_authentication_service(container: ApplicationContainer = Depends(get_container)):
    return container.authentication_service


def get_audit_event_service(container: ApplicationContainer = Depends(get_container)):
    return container.audit_event_service
