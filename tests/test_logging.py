from userapi.main import create_app
from userapi.observability.logging import add_service, configure_logging


def test_service_field_follows_latest_app_name(settings) -> None:
    create_app(settings)
    assert add_service(None, "info", {"event": "x"})["service"] == "user-service-test"


def test_reconfiguring_updates_service_but_keeps_explicit_values() -> None:
    configure_logging("INFO", service="first")
    configure_logging("INFO", service="second")

    assert add_service(None, "info", {})["service"] == "second"
    assert add_service(None, "info", {"service": "worker"})["service"] == "worker"
