#!/usr/bin/env python3
"""
Build standalone ippool executable
Usage: python3 build.py [--version VERSION] [--dry-run]

Executable name, entry script and default version are read from
pyproject.toml ([project.scripts] and project.version).
"""

import tomllib
from pathlib import Path

import click

ROOT = Path(__file__).resolve().parent

# Imported lazily or by name only, PyInstaller's analysis misses them
HIDDEN_IMPORTS = ["yaml", "rich.logging", "rich.table", "rich.panel", "rich.box"]


def load_project(pyproject: Path = ROOT / "pyproject.toml") -> dict:
    """Name, entry script and version of the first console script"""
    with open(pyproject, "rb") as f:
        project = tomllib.load(f)["project"]

    scripts = project.get("scripts") or {}
    if not scripts:
        raise click.ClickException(f"no [project.scripts] entry in {pyproject}")

    name, entry = next(iter(scripts.items()))
    module = entry.partition(":")[0]
    return {
        "name": name,
        "script": module.replace(".", "/") + ".py",
        "version": project["version"],
    }


def pyinstaller_args(project: dict, root: Path = ROOT, version=None) -> list:
    version = version or project["version"]
    args = [
        str(root / project["script"]),
        "--onefile",
        f"--name={project['name']}-v{version}",
    ]

    # Ship the sample config next to the binary when there is one
    config = root / "config.yaml"
    if config.exists():
        args.append(f"--add-data={config}:.")

    args += [f"--hidden-import={module}" for module in HIDDEN_IMPORTS]
    args += ["--collect-all=rich", "--clean", "--noconfirm"]
    return args


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--version", "version", help="Version suffix (default: pyproject version)")
@click.option("--dry-run", is_flag=True, help="Print PyInstaller arguments only")
@click.option(
    "--pyproject",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=ROOT / "pyproject.toml",
    show_default=False,
)
def main(version, dry_run, pyproject):
    """🔨 Build a one-file executable of the ippool CLI"""
    project = load_project(pyproject)
    root = pyproject.parent

    if not (root / project["script"]).exists():
        raise click.ClickException(f"{project['script']} not found in {root}")

    args = pyinstaller_args(project, root=root, version=version)
    output = args[2].split("=", 1)[1]

    click.echo(f"🔨 Building standalone executable for {project['script']}...")
    click.echo(f"📦 Version: {version or project['version']}")
    click.echo(f"📁 Output: dist/{output}")

    if dry_run:
        click.echo(" ".join(args))
        return

    # Only needed for a real build; installed with the build extra
    import PyInstaller.__main__

    PyInstaller.__main__.run(args)
    click.echo(f"✅ Build complete! Executable: dist/{output}")


if __name__ == "__main__":
    main()
