import click

from mittimobil.services import DataMigrationService


def register_cli(app):
    @app.cli.command("data-migrate")
    @click.option("--dry-run", is_flag=True, help="List pending data migrations without applying them.")
    def data_migrate(dry_run):
        """Apply pending versioned data migrations."""
        results = DataMigrationService.run(dry_run=dry_run)
        if not results:
            click.echo("No pending data migrations.")
            return
        for name, rows in results:
            if rows is None:
                click.echo(f"pending  {name}")
            else:
                click.echo(f"applied  {name} ({rows} rows)")
