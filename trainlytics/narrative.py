"""Rule-based interpretation of single dashboard metrics.

Turns a metric value into a severity tier plus presenter texts (pt-BR, the
language of the dashboards). No I/O, no state: the same inputs always give
the same interpretation.
"""

from dataclasses import dataclass

from .constants import (
    AGGREGATE_INDICATOR_LABEL,
    ALL,
    MetricKind,
    Severity,
    TrainingType,
)
from .metrics import is_inverse_metric
from .models import FilterState


@dataclass(frozen=True)
class Interpretation:
    """Presenter content for one metric card."""

    title: str
    concept: str
    insight: str
    severity: Severity


def _grade(value: float) -> Interpretation:
    title = "Média Geral da Turma"
    concept = (
        "A média aritmética de todas as notas aplicadas até o momento. "
        "Reflete a absorção técnica do conteúdo."
    )
    if value >= 8:
        return Interpretation(
            title,
            concept,
            f"Excelente! A turma está com {value:.1f}, acima da meta de 8.0. "
            "O conteúdo está sendo bem absorvido.",
            Severity.SUCCESS,
        )
    if value >= 7:
        return Interpretation(
            title,
            concept,
            f"Atenção. A média de {value:.1f} está próxima da meta (8.0), "
            "mas requer reforço em tópicos específicos.",
            Severity.WARNING,
        )
    return Interpretation(
        title,
        concept,
        f"Crítico. A média {value:.1f} indica dificuldades generalizadas. "
        "Revise a metodologia ou o ritmo das aulas.",
        Severity.DANGER,
    )


def _absenteeism(value: float) -> Interpretation:
    title = "Taxa de Absenteísmo"
    concept = (
        "Porcentagem de faltas em relação ao total de dias letivos. "
        "O limite aceitável de mercado costuma ser 5%."
    )
    if value <= 5:
        return Interpretation(
            title,
            concept,
            "Engajamento alto! A presença em sala está consistente, "
            "o que favorece o aprendizado.",
            Severity.SUCCESS,
        )
    if value <= 10:
        return Interpretation(
            title,
            concept,
            f"Sinal amarelo. {value:.1f}% de faltas começa a impactar a "
            "continuidade do conteúdo.",
            Severity.WARNING,
        )
    return Interpretation(
        title,
        concept,
        f"Alerta Vermelho! {value:.1f}% é um índice muito alto. "
        "Verifique motivos de saúde ou desmotivação.",
        Severity.DANGER,
    )


def _turnover(value: float) -> Interpretation:
    title = "Taxa de Turnover (Evasão)"
    concept = (
        "Percentual de alunos que desistiram ou foram desligados durante o "
        "processo de formação."
    )
    if value == 0:
        return Interpretation(
            title,
            concept,
            "Retenção perfeita! Todos os alunos iniciados continuam ativos.",
            Severity.SUCCESS,
        )
    if value < 10:
        return Interpretation(
            title,
            concept,
            "Turnover controlado. Algumas perdas são esperadas, mas monitore "
            "os motivos de saída.",
            Severity.WARNING,
        )
    return Interpretation(
        title,
        concept,
        "Turnover elevado. Perder muitos alunos na formação custa caro para a "
        "operação. Investigue a seleção ou o clima.",
        Severity.DANGER,
    )


def _active(value: float) -> Interpretation:
    return Interpretation(
        "Alunos Ativos",
        "Contagem absoluta de alunos aptos a continuar o treinamento ou seguir "
        "para a operação.",
        f"Atualmente temos {int(value)} alunos em sala. Certifique-se de ter "
        "posições de atendimento (PAs) suficientes para todos na graduação.",
        Severity.NEUTRAL,
    )


def _evolution(value: float, filters: FilterState) -> Interpretation:
    indicator = (
        AGGREGATE_INDICATOR_LABEL if filters.indicator == ALL else filters.indicator
    )
    title = "Evolução no Período"
    concept = (
        f"Variação percentual entre o resultado Pré e Pós-Reciclagem para {indicator}."
    )

    if is_inverse_metric(indicator):
        if value < 0:
            return Interpretation(
                title,
                concept,
                f'Excelente! O indicador "{indicator}" teve uma REDUÇÃO de '
                f"{abs(value):.1f}%, o que representa ganho de eficiência operacional.",
                Severity.SUCCESS,
            )
        if value == 0:
            return Interpretation(
                title,
                concept,
                "Estável. O indicador manteve o mesmo patamar.",
                Severity.WARNING,
            )
        return Interpretation(
            title,
            concept,
            f"Atenção. O indicador AUMENTOU {value:.1f}%. Para métricas como "
            f"{indicator}, o objetivo é a redução.",
            Severity.DANGER,
        )

    if value > 10:
        return Interpretation(
            title,
            concept,
            f"Crescimento robusto! O indicador subiu {value:.1f}%, mostrando "
            "forte impacto do treinamento.",
            Severity.SUCCESS,
        )
    if value > 0:
        return Interpretation(
            title,
            concept,
            f"Melhoria positiva de {value:.1f}%. O resultado está na direção certa.",
            Severity.WARNING,
        )
    return Interpretation(
        title,
        concept,
        f"Alerta. O indicador caiu ou ficou estagnado ({value:.1f}%). "
        "O treinamento não surtiu o efeito esperado de aumento.",
        Severity.DANGER,
    )


def _passed(value: float) -> Interpretation:
    return Interpretation(
        "Meta Atingida (Pós)",
        "Quantidade de operadores que alcançaram a meta estipulada para o "
        "indicador após o treinamento.",
        f"Monitorar este número é crucial para ROI. {int(value)} operadores "
        "agora entregam o resultado esperado.",
        Severity.NEUTRAL,
    )


def _eval(value: float) -> Interpretation:
    title = "Média Avaliação (Sala)"
    concept = (
        "Nota média obtida no teste de conhecimento (prova teórica) aplicada "
        "durante a reciclagem."
    )
    if value >= 9:
        return Interpretation(
            title,
            concept,
            "Domínio teórico excelente. A turma entendeu os conceitos passados em sala.",
            Severity.SUCCESS,
        )
    return Interpretation(
        title,
        concept,
        "Atenção à teoria. Notas baixas aqui indicam que a mensagem do "
        "instrutor não foi clara.",
        Severity.WARNING,
    )


def _score(value: float) -> Interpretation:
    return Interpretation(
        "Performance Score IA",
        "Índice calculado pela IA (0-100) ponderando evolução, atingimento de "
        "meta e notas de prova.",
        "Este score resume a eficácia geral da ação de treinamento em um único "
        "número para a gestão.",
        Severity.SUCCESS if value > 70 else Severity.WARNING,
    )


def _unknown(metric: str) -> Interpretation:
    return Interpretation(metric, "", "", Severity.NEUTRAL)


def interpret(
    metric: MetricKind | str,
    value: float,
    context: TrainingType,
    filters: FilterState | None = None,
) -> Interpretation:
    """Interpret a metric value for the presenter.

    Args:
        metric: Which card was opened.
        value: The metric value as shown on the card.
        context: Training type of the dashboard; initial and refresher
            dashboards interpret different metrics.
        filters: Active filters. Refresher evolution reads the selected
            indicator to decide whether a drop is good news.

    Returns:
        Interpretation: Title, concept, insight and severity.
    """
    filters = filters or FilterState()

    if context == TrainingType.INITIAL:
        rules = {
            MetricKind.GRADE: _grade,
            MetricKind.ABSENTEEISM: _absenteeism,
            MetricKind.TURNOVER: _turnover,
            MetricKind.ACTIVE: _active,
        }
    else:
        rules = {
            MetricKind.EVOLUTION: lambda v: _evolution(v, filters),
            MetricKind.PASSED: _passed,
            MetricKind.EVAL: _eval,
            MetricKind.SCORE: _score,
        }

    rule = rules.get(metric)
    if rule is None:
        return _unknown(str(metric))
    return rule(value)
