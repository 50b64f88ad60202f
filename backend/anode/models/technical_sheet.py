from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from anode.config import DEFAULT_SHEET_VERSION


class CircuitRow(BaseModel):
    """One line of the distribution panel table. Position in the list is the printed number."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field("", alias="nome", description="e.g., Iluminação Sala")
    breaker: str = Field("", alias="disjuntor", description="e.g., 10A Curva B")
    cable_gauge: str = Field("", alias="caboMM", description="Cable cross-section, e.g., 1,5")
    notes: Optional[str] = Field(None, alias="observacoes")


class CompanyContacts(BaseModel):
    """Public contact channels of the installer company, printed under the electrician block."""
    model_config = ConfigDict(populate_by_name=True)

    site: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    whatsapp: Optional[str] = None


class TechnicalSheetRecord(BaseModel):
    """
    Technical sheet ("ficha técnica") of an electrical distribution panel.

    Field aliases are the document-store names used by the web client, so a
    stored sheet can be posted as-is.
    """
    model_config = ConfigDict(populate_by_name=True)

    company_logo_ref: Optional[str] = Field(None, alias="logotipoEmpresaUrl")
    company_name: Optional[str] = Field(None, alias="nomeEmpresa")
    title: str = Field("", alias="tituloFicha")
    location_label: str = Field("", alias="identificacaoLocal", description="e.g., Bloco A - Ap 204")
    installation_date: Optional[Union[datetime, date]] = Field(None, alias="dataInstalacao")
    technical_responsible: str = Field("", alias="responsavelTecnico")
    sheet_version: str = Field(DEFAULT_SHEET_VERSION, alias="versaoFicha")

    circuits: List[CircuitRow] = Field(default_factory=list, alias="circuitos")

    reference_standard_note: Optional[str] = Field(None, alias="observacaoNBR")
    residual_device_installed: bool = Field(False, alias="observacaoDR")
    residual_device_extra_note: Optional[str] = Field(None, alias="descricaoDROpcional")

    public_access_text: Optional[str] = Field(None, alias="textoAcessoOnline")
    public_sheet_link: Optional[str] = Field(None, alias="linkFichaPublica")

    electrician_name: str = Field("", alias="nomeEletricista")
    electrician_signature_ref: Optional[str] = Field(None, alias="assinaturaEletricistaUrl")
    electrician_contact: str = Field("", alias="contatoEletricista")
    gatehouse_extension: Optional[str] = Field(None, alias="ramalPortaria")

    company_contacts: Optional[CompanyContacts] = Field(None, alias="contatosEmpresa")

    created_at: Optional[datetime] = Field(None, alias="dataCriacao")

    def image_refs(self) -> List[str]:
        """URLs the renderer may want as bitmaps (logo and signature), in draw order."""
        return [ref for ref in (self.company_logo_ref, self.electrician_signature_ref) if ref]


class RenderedSheet(BaseModel):
    filename: str
    content: bytes
    page_count: int
