from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from apps.multas.importacao import recalcular_e_gravar
from apps.multas.status import parse_data


class Command(BaseCommand):
    help = "Grava o recálculo de status (Vencido / Indicar Expirado) das multas. Pensado para rodar diariamente."

    def add_arguments(self, parser):
        parser.add_argument(
            "--data",
            type=str,
            default="",
            help="Data de referência DD/MM/AAAA (default: hoje).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Só conta as multas que mudariam, sem gravar.",
        )

    def handle(self, *args, **options):
        hoje = None
        if options["data"]:
            hoje = parse_data(options["data"])
            if hoje is None:
                raise CommandError("Data inválida. Use DD/MM/AAAA.")

        dry_run = options["dry_run"]
        total = recalcular_e_gravar(hoje, gravar=not dry_run)
        if dry_run:
            self.stdout.write(self.style.WARNING(f"{total} multa(s) seriam alteradas (dry-run)."))
        else:
            self.stdout.write(self.style.SUCCESS(f"{total} multa(s) atualizadas."))
