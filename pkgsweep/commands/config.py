import click
from pkgsweep.config import load_config, get_default_config
import json


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("generate")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
def generate_config(force):
    """Write the default configuration to ~/.pkgsweep/config.json."""
    from pkgsweep.config import get_config_path, save_config

    config_path = get_config_path()
    if config_path.exists() and not force:
        click.echo(f"Configuration already exists at {config_path}. Use --force to overwrite.")
        return
    save_config(get_default_config())
    click.echo(f"Default configuration written to {config_path}")


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
def show_config(pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    from pkgsweep.config import get_config_path

    if path:
        config_path = get_config_path()
        click.echo(json.dumps({"config_path": str(config_path)}))
        return

    config = load_config()

    # Never print credentials
    github = config.get("github", {})
    if github.get("client_secret"):
        github["client_secret"] = "***"

    if pretty:
        click.echo(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        click.echo(json.dumps(config, ensure_ascii=False))
