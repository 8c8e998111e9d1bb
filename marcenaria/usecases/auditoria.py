# marcenaria/usecases/auditoria.py
"""
UC: log de auditoria.

- ações do fluxo de solicitações (gravadas dentro das transições);
- ações auxiliares: exportação de relatórios e troca de senha;
- consulta por período/usuário, do mais recente ao mais antigo.
"""
from __future__ import annotations

from typing import List, Optional

from marcenaria.config import DB_PATH
from marcenaria.domain.errors import EntradaInvalida
from marcenaria.domain.models import FiltroAuditoria, RegistroAuditoria, Usuario
from marcenaria.infra.repositories import AuditoriaRepo
from marcenaria.infra.logger import log_system_event

ACAO_SOLICITACAO_CRIADA = "Solicitação Criada"
ACAO_SOLICITACAO_APROVADA = "Solicitação Aprovada"
ACAO_SOLICITACAO_REJEITADA = "Solicitação Rejeitada"
ACAO_COMPRA_REGISTRADA = "Compra Registrada"
ACAO_USUARIO_CADASTRADO = "Usuário Cadastrado"
ACAO_ITEM_CADASTRADO = "Item Cadastrado"
ACAO_IMPORTACAO_ITENS = "Importação de Itens"
ACAO_MINIMO_ALTERADO = "Estoque Mínimo Alterado"
ACAO_ALTERACAO_SENHA = "Alteração de Senha"

FORMATOS_EXPORTACAO = {"csv": "Exportação CSV", "pdf": "Exportação PDF"}


def registrar_evento(usuario: Optional[Usuario], acao: str, descricao: str = "", db_path: str = DB_PATH) -> RegistroAuditoria:
    """Inclui um registro avulso no log (única forma de escrita)."""
    reg = AuditoriaRepo(db_path).append(usuario, acao, descricao)
    log_system_event("auditoria_append", {"id": reg.id, "acao": reg.acao})
    return reg


def registrar_exportacao(usuario: Usuario, relatorio: str, formato: str, db_path: str = DB_PATH) -> RegistroAuditoria:
    """Registra que ``usuario`` baixou ``relatorio`` no ``formato`` (csv/pdf)."""
    acao = FORMATOS_EXPORTACAO.get((formato or "").strip().lower())
    if acao is None:
        raise EntradaInvalida(f"Formato de exportação desconhecido: {formato!r}.", entidade="auditoria", campo="formato")
    return registrar_evento(usuario, acao, f"{usuario.nome} baixou o relatório: {relatorio}", db_path=db_path)


def registrar_alteracao_senha(usuario: Usuario, db_path: str = DB_PATH) -> RegistroAuditoria:
    return registrar_evento(usuario, ACAO_ALTERACAO_SENHA, f"{usuario.nome} alterou a própria senha", db_path=db_path)


def consultar_auditoria(
    data_inicio: Optional[str] = None,
    data_fim: Optional[str] = None,
    usuario_id: Optional[int] = None,
    limite: Optional[int] = None,
    db_path: str = DB_PATH,
) -> List[RegistroAuditoria]:
    filtro = FiltroAuditoria(data_inicio=data_inicio, data_fim=data_fim, usuario_id=usuario_id, limite=limite)
    return AuditoriaRepo(db_path).query(filtro)
