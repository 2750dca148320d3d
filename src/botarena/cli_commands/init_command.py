"""The ``init`` command: write starter configs and traffic profiles."""

import json
from pathlib import Path

import typer

from botarena.modules.arena import save_attack_profile, save_policy_document
from botarena.modules.detector import DEFAULT_POLICY
from botarena.modules.traffic import STARTER_PROFILES, AttackProfile

from .shared import DEFAULT_CONFIG_DIR, DEFAULT_PROFILES_DIR, app, console


def _write(path: Path, force: bool, writer) -> bool:
    if path.exists() and not force:
        console.print(f"[dim]exists, skipped: {path}[/dim]")
        return False
    writer(path)
    console.print(f"[green]wrote[/green] {path}")
    return True


@app.command()
def init(
    config_dir: Path = typer.Option(DEFAULT_CONFIG_DIR, "--config-dir", help="Config directory"),
    profiles_dir: Path = typer.Option(
        DEFAULT_PROFILES_DIR, "--profiles-dir", help="Traffic profile directory"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files"),
) -> None:
    """Create a starter attack profile, default policy and traffic profiles."""
    written = 0
    written += _write(
        config_dir / "attack_profile.json",
        force,
        lambda p: save_attack_profile(p, AttackProfile()),
    )
    written += _write(
        config_dir / "policy.yml",
        force,
        lambda p: save_policy_document(p, DEFAULT_POLICY),
    )
    profiles_dir.mkdir(parents=True, exist_ok=True)
    for name, profile in STARTER_PROFILES.items():
        written += _write(
            profiles_dir / f"{name}.json",
            force,
            lambda p, profile=profile: p.write_text(
                json.dumps(profile.to_dict(), indent=2) + "\n", encoding="utf-8"
            ),
        )
    console.print(f"\n{written} file(s) written. Next: [bold]botarena run --fast[/bold]")
