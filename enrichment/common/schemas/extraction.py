"""
LLM Output Schemas

Pydantic models the Synthesis Client validates extracted JSON against.
String fields that may carry inline web citations are cleaned on the way in.
"""

from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, Field, model_validator

from ..llm_utils import citation_stripped_enum, strip_citations


CleanStr = Annotated[Optional[str], BeforeValidator(lambda v: strip_citations(v) if isinstance(v, str) else v)]

DealOutcome = Literal["deal", "no_deal", "unknown"]
PendingDealOutcome = Literal["deal", "no_deal", "deal_fell_through", "unknown"]
Confidence = Literal["high", "medium", "low"]


# ============================================================================
# Investor extraction (deal re-enrichment)
# ============================================================================

class InvestorInvestment(BaseModel):
    """One investor's participation in a deal"""
    name: str
    amount: Optional[float] = None
    equity: Optional[float] = None
    is_lead: Optional[bool] = Field(default=False, alias="isLead")

    model_config = {"populate_by_name": True}


class InvestorsOnly(BaseModel):
    """Investors who closed a deal with the product"""
    investors: List[InvestorInvestment] = Field(default_factory=list, alias="sharks")

    model_config = {"populate_by_name": True}


class DealInfo(BaseModel):
    """Deal outcome and terms for a product whose outcome is not yet known"""
    deal_outcome: PendingDealOutcome = Field(alias="dealOutcome")
    asking_amount: Optional[float] = Field(default=None, alias="askingAmount")
    asking_equity: Optional[float] = Field(default=None, alias="askingEquity")
    deal_amount: Optional[float] = Field(default=None, alias="dealAmount")
    deal_equity: Optional[float] = Field(default=None, alias="dealEquity")
    investors: List[InvestorInvestment] = Field(default_factory=list, alias="sharks")
    confidence: Confidence

    model_config = {"populate_by_name": True}


# ============================================================================
# Season discovery
# ============================================================================

class DiscoveredProductFields(BaseModel):
    """A product as described by the LLM from season search results"""
    name: str
    company_name: CleanStr = Field(default=None, alias="companyName")
    founders: List[str] = Field(default_factory=list)
    episode_number: Optional[int] = Field(default=None, alias="episodeNumber")
    asking_amount: Optional[float] = Field(default=None, alias="askingAmount")
    asking_equity: Optional[float] = Field(default=None, alias="askingEquity")
    deal_amount: Optional[float] = Field(default=None, alias="dealAmount")
    deal_equity: Optional[float] = Field(default=None, alias="dealEquity")
    deal_outcome: Annotated[
        Optional[DealOutcome],
        citation_stripped_enum(("deal", "no_deal", "unknown")),
    ] = Field(default="unknown", alias="dealOutcome")
    investors: List[str] = Field(default_factory=list, alias="sharks")
    category: CleanStr = None
    description: CleanStr = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _default_outcome(self):
        if self.deal_outcome is None:
            self.deal_outcome = "unknown"
        return self


class SeasonProducts(BaseModel):
    """Products for one season. Accepts ``{"products": [...]}`` or a bare array."""
    products: List[DiscoveredProductFields] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_list(cls, data):
        if isinstance(data, list):
            return {"products": data}
        return data
