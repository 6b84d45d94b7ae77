from __future__ import annotations

from decimal import Decimal

from django import forms

from .choices import Responsabilidade
from .models import Multa
from .status import parse_valor_estrito

FORMATOS_DATA = ["%d/%m/%Y", "%Y-%m-%d"]


def _campo_data(label: str) -> forms.DateField:
    return forms.DateField(
        label=label,
        required=False,
        input_formats=FORMATOS_DATA,
        widget=forms.DateInput(format="%d/%m/%Y", attrs={"placeholder": "DD/MM/AAAA"}),
    )


class ValorField(forms.CharField):
    """Aceita "R$ 1.234,56", "1234.56" ou vazio (0)."""

    def to_python(self, value) -> Decimal:
        valor = parse_valor_estrito(super().to_python(value))
        if valor is None:
            raise forms.ValidationError("Valor inválido.")
        return valor.quantize(Decimal("0.01"))

    def validate(self, value):
        super().validate(value)
        if value < 0:
            raise forms.ValidationError("Valor não pode ser negativo.")


class MultaForm(forms.ModelForm):
    data_cometimento = _campo_data("Data do cometimento")
    vencimento_boleto = _campo_data("Vencimento do boleto")
    expiracao_indicacao = _campo_data("Prazo de indicação")
    valor = ValorField(required=False)
    valor_boleto = ValorField(label="Valor do boleto", required=False)
    responsabilidade = forms.ChoiceField(choices=Responsabilidade.choices, initial=Responsabilidade.EMPRESA)

    class Meta:
        model = Multa
        fields = [
            "auto_infracao",
            "veiculo",
            "motorista",
            "estado",
            "descricao",
            "codigo_infracao",
            "data_cometimento",
            "hora_cometimento",
            "valor",
            "valor_boleto",
            "boleto",
            "consulta",
            "vencimento_boleto",
            "responsabilidade",
            "expiracao_indicacao",
            "notas",
        ]
        widgets = {"notas": forms.Textarea(attrs={"rows": 3})}

    def validate_unique(self):
        # Unicidade do auto é verificada no serviço, com mensagem própria.
        pass

    def clean_auto_infracao(self):
        return (self.cleaned_data.get("auto_infracao") or "").strip()

    def clean_veiculo(self):
        return (self.cleaned_data.get("veiculo") or "").strip().upper()

    def clean_estado(self):
        return (self.cleaned_data.get("estado") or "").strip().upper()

    def clean_hora_cometimento(self):
        hora = (self.cleaned_data.get("hora_cometimento") or "").strip()
        if not hora:
            return ""
        partes = hora.split(":")
        if (
            len(partes) != 2
            or not all(p.isdigit() for p in partes)
            or not (0 <= int(partes[0]) < 24 and 0 <= int(partes[1]) < 60)
        ):
            raise forms.ValidationError("Use o formato HH:MM.")
        return f"{int(partes[0]):02d}:{int(partes[1]):02d}"

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("responsabilidade") != Responsabilidade.MOTORISTA:
            cleaned["expiracao_indicacao"] = None
        return cleaned

    def dados(self) -> dict:
        return {campo: self.cleaned_data.get(campo) for campo in self.Meta.fields}


class PagamentoForm(forms.Form):
    comprovante_pagamento = forms.URLField(label="Comprovante de pagamento", required=False, max_length=500)
