from django import template
from django.utils.html import format_html

from apps.multas.choices import StatusBoleto, StatusIndicacao
from apps.multas.status import formatar_data, formatar_valor

register = template.Library()


@register.filter
def moeda(value):
    return formatar_valor(value)


@register.filter
def data_br(value):
    return formatar_data(value)


@register.simple_tag
def status_badge(value):
    """Badge do status (boleto ou indicação) com a classe do valor bruto."""
    membro = StatusBoleto.from_text(value) or StatusIndicacao.from_text(value)
    if membro is None:
        return ""
    return format_html('<span class="badge badge-{}">{}</span>', membro.value, membro.label)


@register.filter
def get_item(mapping, key):
    return (mapping or {}).get(key, 0)
