from __future__ import annotations

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from apps.multas.importacao import importar_csv


class Command(BaseCommand):
    help = "Importa multas de um CSV exportado da base antiga (valores 'R$ 1.234,56', datas DD/MM/AAAA)."

    def add_arguments(self, parser):
        parser.add_argument("arquivo", type=str, help="Caminho do CSV.")
        parser.add_argument("--delimitador", type=str, default=None, help="Separador (default: detecta ';' ou ',').")
        parser.add_argument("--encoding", type=str, default="utf-8", help="Encoding do arquivo (default: utf-8).")
        parser.add_argument("--dry-run", action="store_true", help="Valida o arquivo sem gravar.")

    def handle(self, *args, **options):
        caminho = Path(options["arquivo"])
        if not caminho.is_file():
            raise CommandError(f"Arquivo não encontrado: {caminho}")
        try:
            conteudo = caminho.read_text(encoding=options["encoding"])
        except UnicodeDecodeError as exc:
            raise CommandError(f"Não foi possível ler o arquivo com encoding {options['encoding']}.") from exc

        resumo = importar_csv(conteudo, delimitador=options["delimitador"], gravar=not options["dry_run"])

        for auto in resumo.duplicadas:
            self.stdout.write(self.style.WARNING(f"Auto de infração já cadastrado, ignorado: {auto}"))
        for linha in resumo.invalidas:
            self.stdout.write(self.style.WARNING(f"Sem auto de infração ou placa, ignorada: {linha}"))

        prefixo = "Seriam importadas" if options["dry_run"] else "Importadas"
        self.stdout.write(self.style.SUCCESS(f"{prefixo} {resumo.criadas} multa(s)."))
