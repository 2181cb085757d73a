"""Management command to import a CSV/XLSX stock sheet into HOLDING."""

from pathlib import Path

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from assets.services.intake import intake_rows
from assets.services.rows import detect_format, parse_rows


class Command(BaseCommand):
    help = "Import assets from a .csv or .xlsx file into holding"

    def add_arguments(self, parser):
        parser.add_argument("path", help="Spreadsheet to import")
        parser.add_argument(
            "--actor",
            help="Username recorded as the creator of the imported assets",
        )

    def handle(self, *args, **options):
        path = Path(options["path"])
        if not path.is_file():
            raise CommandError(f"File not found: {path}")

        actor = None
        if options["actor"]:
            User = get_user_model()
            try:
                actor = User.objects.get(username=options["actor"])
            except User.DoesNotExist:
                raise CommandError(
                    f"User '{options['actor']}' does not exist."
                ) from None

        try:
            rows = parse_rows(path.read_bytes(), detect_format(path.name))
        except ValidationError as exc:
            raise CommandError(exc.messages[0]) from None

        report = intake_rows(rows, actor=actor)

        for rejection in report["rejected"]:
            self.stdout.write(
                self.style.WARNING(
                    f"Row {rejection['row']}: {rejection['message']}"
                )
            )
        self.stdout.write(
            self.style.SUCCESS(
                f"Imported {len(report['created'])} asset(s) into holding, "
                f"{len(report['rejected'])} rejected."
            )
        )
