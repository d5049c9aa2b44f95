"""Payload and prompt builders for the narrative service.

Pure functions: they turn canonical records into the simplified, pt-BR keyed
structures and instructions sent to the model.
"""

import json
import re
from typing import Any, Sequence

from ..constants import (
    ABSENCE_RISK_THRESHOLD,
    APPROVAL_GRADE,
    CLASSROOM_EVAL_TARGET,
    OBSERVATION_PREVIEW_CHARS,
    REFRESHER_PAYLOAD_MAX_CHARS,
    PayloadKey,
)
from ..metrics import group_by_operator
from ..models import InitialTrainingRecord, RefresherRecord

_CODE_FENCE = re.compile(r"```(?:json)?")


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences the model sometimes wraps JSON in."""
    return _CODE_FENCE.sub("", text).strip()


def build_initial_payload(
    records: Sequence[InitialTrainingRecord],
) -> list[dict[str, Any]]:
    """Simplified onboarding records, observations cut to a short preview."""
    return [
        {
            PayloadKey.NAME: record.name,
            PayloadKey.GRADE: record.grade,
            PayloadKey.ABSENCES: record.absences,
            PayloadKey.STATUS: record.status,
            PayloadKey.PARTICIPATION: record.participation,
            PayloadKey.OBSERVATIONS: (
                record.observations[:OBSERVATION_PREVIEW_CHARS]
                if record.observations
                else "N/A"
            ),
        }
        for record in records
    ]


def build_refresher_payload(
    records: Sequence[RefresherRecord],
) -> list[dict[str, Any]]:
    """Refresher records consolidated per operator id, one metric per KPI."""
    return [
        {
            PayloadKey.OPERATOR_NAME: group[0].name,
            PayloadKey.METRICS: [
                {
                    PayloadKey.INDICATOR: record.indicator,
                    PayloadKey.TARGET: record.target,
                    PayloadKey.PRE_RESULT: record.pre_result,
                    PayloadKey.EVALUATION: record.evaluation,
                    PayloadKey.POST_RESULT: record.post_result,
                    PayloadKey.OPERATOR_OBSERVATIONS: record.observations,
                }
                for record in group
            ],
        }
        for group in group_by_operator(records).values()
    ]


INITIAL_SYSTEM_INSTRUCTION = f"""Você é um Analista de Treinamento Senior.
Gere um JSON estrito para dashboard.
REGRA DE NEGÓCIO CRÍTICA:
1. APROVAÇÃO: Média >= {APPROVAL_GRADE:.1f}. (Notas abaixo disso são consideradas REPROVAÇÃO/RISCO).
2. FALTAS: {ABSENCE_RISK_THRESHOLD} faltas ou mais é considerado ALTO RISCO. (Máximo aceitável é {ABSENCE_RISK_THRESHOLD - 1}).
Seja EXTREMAMENTE conciso.
Limite todas as listas a no máximo 5 itens (Top 5).
Não invente dados."""

REFRESHER_SYSTEM_INSTRUCTION = """Você é um Analista de Performance Operacional de Call Center.
Analise os resultados de uma RECICLAGEM TÉCNICA onde cada operador pode ter múltiplos indicadores (TMA, NPS, Qualidade, Conversão, etc.).

IMPORTANTE SOBRE INDICADORES:
- Indicadores de TEMPO (TMA, TME, Pausa) e ERROS (Rechamada, Reclamações, Churn) devem DIMINUIR. Uma porcentagem de evolução NEGATIVA nestes casos é POSITIVA/BOM.
- Indicadores de QUALIDADE (NPS, CSAT, Nota, Conversão) devem AUMENTAR.

DADOS DE ENTRADA:
- Lista de operadores agrupados.
- Cada operador tem uma lista de "metrics".
- "pre_reciclagem" e "pos_reciclagem" são RESULTADOS OPERACIONAIS.
- "meta" é o alvo operacional.
- "avaliacao_sala" é a nota do teste de conhecimento (0-10) aplicado durante a reciclagem.

OBJETIVO:
Avaliar se a Reciclagem (avaliada pela nota de sala) gerou impacto real nos indicadores operacionais.
Consolide a análise por operador se houver múltiplos indicadores.

Gere uma minuta de e-mail corporativo formal para os supervisores."""


def build_initial_prompt(
    records: Sequence[InitialTrainingRecord], *, in_progress: bool
) -> str:
    """Instruction for the onboarding cohort analysis."""
    payload = json.dumps(build_initial_payload(records), ensure_ascii=False)
    status = "EM ANDAMENTO" if in_progress else "CONCLUÍDA"
    return f"""CONTEXTO: Turma {status}.

DADOS:
{payload}

OUTPUT JSON REQUERIDO:
- summary: Resumo executivo focado na meta de {APPROVAL_GRADE:.1f} (max 1 parágrafo).
- keyInsights: 3 Insights focados na CORRELAÇÃO entre FALTAS, PARTICIPAÇÃO e NOTAS (Ex: "Alunos com baixa participação tiveram queda de X% na nota").
- recommendations: Top 5 ações corretivas práticas para quem está abaixo de {APPROVAL_GRADE:.1f}.
- profilingInsights: Top 5 observações de comportamento mais relevantes (analisando o campo Obs e Participacao), objetos {{studentName, alignmentScore, observation}}.
- individualInsights: Top 5 alunos críticos (nota < {APPROVAL_GRADE:.1f} ou faltas >= {ABSENCE_RISK_THRESHOLD}), objetos {{studentName, insight}}.
- performanceScore: 0-100 (Considerando a regra de {APPROVAL_GRADE:.1f})."""


def build_refresher_prompt(records: Sequence[RefresherRecord]) -> str:
    """Instruction for the refresher analysis; the data block is size-capped."""
    payload = json.dumps(build_refresher_payload(records), ensure_ascii=False)
    return f"""DADOS OPERACIONAIS DA RECICLAGEM (AGRUPADOS POR OPERADOR):
{payload[:REFRESHER_PAYLOAD_MAX_CHARS]}

OUTPUT JSON REQUERIDO:
- summary: Análise executiva sobre o impacto da reciclagem nos KPIs operacionais da turma.
- keyInsights: 3 insights de correlação (Ex: "Operadores com nota alta em sala reduziram o TMA em X%").
- recommendations: 3 ações práticas de gestão baseadas nos desvios de meta.
- emailDraft: Minuta de e-mail formal aos supervisores e coordenadores reportando a eficácia operacional do treinamento.
- performanceScore: 0-100 (Score geral de sucesso da reciclagem baseado no atingimento de metas pós-treino).
- individualInsights: Top 3 destaques (positivos ou negativos), objetos {{studentName, insight}}. Cite o nome e o indicador específico (Ex: "João melhorou 20% no TMA")."""


def build_student_feedback_prompt(record: InitialTrainingRecord) -> str:
    """Sandwich-style feedback request for one student."""
    first_name = record.name.split(" ")[0]
    observations = record.observations or "Nenhuma observação registrada"
    return f"""Gere um feedback estruturado e profissional para o aluno abaixo.
Use o método "Sanduíche" (Elogio sincero -> Ponto de atenção -> Motivação final).
Use Markdown para formatação.

DADOS DO ALUNO:
- Nome: {record.name}
- Nota Atual: {record.grade:.1f} (Meta de Aprovação: {APPROVAL_GRADE:.1f})
- Faltas: {record.absences} (Limite: {ABSENCE_RISK_THRESHOLD})
- Observações do Instrutor: {observations}
- Participação: {record.participation}

DIRETRIZES:
1. Se a nota for < {APPROVAL_GRADE:.1f}, o tom deve ser de ALERTA e suporte técnico.
2. Se faltas >= {ABSENCE_RISK_THRESHOLD}, o tom deve ser de COBRANÇA sobre regras.
3. Se nota > 9.0, parabenize pela excelência.
4. Seja curto e direto (máximo 150 palavras).
5. Fale diretamente com o aluno ("Olá {first_name}...")."""


def build_refresher_feedback_prompt(record: RefresherRecord) -> str:
    """Feedback request for one operator KPI.

    A post result of 0 is read as "not measured yet", which switches the
    prompt to the theory-only scenario.
    """
    has_post_data = record.post_result != 0
    post_text = (
        f"{record.post_result:g}"
        if has_post_data
        else "AINDA NÃO MENSURADO/DADOS INDISPONÍVEIS"
    )
    observations = record.observations or "Sem observações"
    return f"""Você é um Supervisor de Qualidade e Treinamento.
Gere um feedback estruturado para o operador de call center abaixo.

CONTEXTO DO OPERADOR:
- Nome: {record.name}
- Indicador (KPI): {record.indicator}
- Meta do KPI: {record.target:g}
- Resultado PRÉ-Reciclagem: {record.pre_result:g}
- Nota da Prova Teórica (Sala): {record.evaluation:.1f} (Meta de sala: {CLASSROOM_EVAL_TARGET:.1f})
- Resultado PÓS-Reciclagem: {post_text}
- Obs do Instrutor: {observations}

REGRA DE NEGÓCIO OBRIGATÓRIA (CENÁRIOS):

CENÁRIO 1: SEM RESULTADO PÓS (Pós = 0 ou Não Mensurado)
- O feedback DEVE focar EXCLUSIVAMENTE na nota da prova teórica e no histórico (Pré).
- Se a nota da prova for baixa (<{CLASSROOM_EVAL_TARGET:g}), cobre estudo. Se for alta, parabenize e peça para aplicar esse conhecimento para melhorar o Pré.
- Motive-o para quando os resultados novos chegarem.

CENÁRIO 2: COM RESULTADO PÓS (Pós existe)
- O feedback DEVE focar na EVOLUÇÃO (Diferença entre Pré e Pós).
- Analise se ele atingiu a Meta no Pós.
- Conecte a nota da prova com o resultado.

ESTRUTURA DE RESPOSTA (Markdown):
1. **Diagnóstico**: Análise da situação atual conforme o cenário detectado acima.
2. **Plano de Ação**: 2 sugestões práticas (comportamentais ou técnicas) para o indicador {record.indicator}.
3. **Conclusão**: Frase motivacional curta.

Tom: Profissional, Humano e Orientado a Resultados. Fale diretamente com o operador.
Máximo 150 palavras."""
