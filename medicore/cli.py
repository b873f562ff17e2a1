"""Flask CLI commands for backups, reseeding, reminders and slot lookups."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import click
from flask import current_app
from flask.cli import AppGroup, with_appcontext

from medicore.extensions import get_store
from medicore.services.backups import restore_backup, write_backup
from medicore.services.errors import ClinicError, StoreCorrupt
from medicore.services.reminders import run_reminder_sweep
from medicore.services.scheduling import check_availability


def register_cli(app) -> None:
    store_group = AppGroup("store", help="Clinic record store maintenance.")

    @store_group.command("export")
    @click.option("--out", "out_dir", type=click.Path(file_okay=False), default=None,
                  help="Directory for the backup file (defaults to data/backups).")
    @with_appcontext
    def export_cmd(out_dir: str | None) -> None:
        target = Path(out_dir) if out_dir else Path(current_app.config["BACKUP_DIR"])
        path = write_backup(get_store(), target)
        click.echo(f"Backup written to {path}")

    @store_group.command("restore")
    @click.argument("source", type=click.Path(exists=True, dir_okay=False))
    @click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
    @with_appcontext
    def restore_cmd(source: str, yes: bool) -> None:
        if not yes:
            click.confirm("This will overwrite the current clinic data with the backup. Continue?", abort=True)
        try:
            counts = restore_backup(
                get_store(),
                Path(source).read_bytes(),
                Path(current_app.config["BACKUP_DIR"]),
            )
        except StoreCorrupt as exc:
            raise click.ClickException(f"Not a valid clinic backup ({exc})") from exc
        for table, count in counts.items():
            click.echo(f"{table}: {count}")
        click.echo("Restore complete. Restart the application to reload.")

    @store_group.command("reset")
    @click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
    @with_appcontext
    def reset_cmd(yes: bool) -> None:
        if not yes:
            click.confirm("This deletes all clinic data and restores the seed data. Continue?", abort=True)
        get_store().reset()
        click.echo("Store reset to seed data.")

    app.cli.add_command(store_group)

    reminders_group = AppGroup("reminders", help="Appointment reminders.")

    @reminders_group.command("sweep")
    @click.option("--today", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
    @with_appcontext
    def sweep_cmd(today) -> None:
        sent = run_reminder_sweep(get_store(), today=today.date() if today else None)
        for entry in sent:
            click.echo(f"{entry.recipient_email}: {entry.subject}")
        click.echo(f"{len(sent)} reminder(s) sent.")

    app.cli.add_command(reminders_group)

    @app.cli.command("slots")
    @click.argument("doctor_id")
    @click.argument("day", required=False)
    @click.option("--emergency", is_flag=True, default=False, help="Use the full 00:00-24:00 day.")
    @with_appcontext
    def slots_cmd(doctor_id: str, day: str | None, emergency: bool) -> None:
        day = day or date.today().isoformat()
        try:
            result = check_availability(get_store(), doctor_id, day, emergency=emergency)
        except (ClinicError, ValueError) as exc:
            raise click.ClickException(str(exc)) from exc
        if not result.slots:
            click.echo("Not available on this day." if result.reason == "not_working" else "No available slots.")
            return
        click.echo(" ".join(result.slots))
