"""Config commands -- view and modify local settings.

Provides the ``apitree config`` sub-command group for reading, updating,
and resetting the settings file (:class:`~apitree.models.Settings`). The
settings hold transport defaults (timeout, SSL verification, redirects),
the optional proxy endpoint, and the preferred output format.
"""

from __future__ import annotations

import typer

from apitree.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current settings.

    Example::

        apitree config show
        apitree --json config show
    """
    from apitree.config import get_config_dir, load_settings

    settings = load_settings()
    info(f"Config directory: {get_config_dir()}")
    format_response(settings.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Settings key (dot notation, e.g., 'request.timeout')."
    ),
    value: str = typer.Argument(help="Value to set; 'none' clears an optional value."),
) -> None:
    """Set a settings value.

    The value is coerced to the type of the existing field (bool, int,
    float, list, or str) and validated before saving.

    Example::

        apitree config set request.timeout 10
        apitree config set request.verify_ssl false
        apitree config set proxy_url http://localhost:8080
        apitree config set plugins_disabled proxy,trace
    """
    from apitree.config import load_settings, save_settings
    from apitree.models import Settings

    settings = load_settings()
    data = settings.model_dump(mode="json")

    # Navigate the dot-separated key path.
    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid settings key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown settings key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes", "on")
    elif isinstance(current, (int, float)):
        try:
            coerced = type(current)(value)
        except ValueError:
            error(f"Expected a number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    elif isinstance(current, list):
        coerced = [item.strip() for item in value.split(",") if item.strip()]
    elif value.lower() == "none":
        coerced = None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_settings = Settings.model_validate(data)
    except Exception as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(new_settings)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    ctx: typer.Context,
) -> None:
    """Reset settings to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        apitree config reset
        apitree --force config reset
    """
    from apitree.config import save_settings
    from apitree.models import Settings

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all settings to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_settings(Settings())
    success("Settings reset to defaults.")
