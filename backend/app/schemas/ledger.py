from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from enum import Enum


class CreditKind(str, Enum):
    """Externally credited allocation kinds."""
    REWARD = "reward"
    AIRDROP = "airdrop"


class PurchaseRequest(BaseModel):
    """Buy sale tokens into a position with a payment asset."""
    caller: str = Field(..., description="Buyer's wallet address")
    asset: str = Field(..., description="Payment asset symbol, e.g. USDT")
    amount: int = Field(..., gt=0, description="Payment amount in the asset's smallest units")
    position_id: int = Field(..., ge=0, description="Position the purchase accrues to")


class ActivatePositionRequest(BaseModel):
    holder: str = Field(..., description="Wallet receiving the position's claim")
    cap_usd: int = Field(..., gt=0, description="USD value cap (USD x 10^18)")
    initial_allocation: int = Field(0, ge=0, description="Purchased allocation at activation (token units)")


class AllocationRequest(BaseModel):
    kind: CreditKind
    amount: int = Field(..., gt=0, description="Allocation in token units")


class SettleRequest(BaseModel):
    caller: str = Field(..., description="Current holder of the position")
    burn_percent: int = Field(..., description="Share of the allocation to burn, in percent")


class TransferRequest(BaseModel):
    sender: str
    recipient: str
    amount: int = Field(..., gt=0)


class DepositRequest(BaseModel):
    """Credit a wallet with a payment asset received off-ledger."""
    wallet: str = Field(..., description="Wallet credited with the deposit")
    amount: int = Field(..., gt=0, description="Amount in the asset's smallest units")


class ReserveFundingRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in the asset's smallest units")


class PriceInfoResponse(BaseModel):
    """Current position on the price ladder."""
    phase_index: int
    current_price: int = Field(..., description="USD x 10^18 per token")
    current_price_usd: float
    next_phase_base_price: Optional[int] = Field(None, description="None on the last phase")
    sold_volume: int
    phase_completed: bool
    cycle: int


class PhaseResponse(BaseModel):
    index: int
    base_price: int
    current_price: int
    sold_volume: int
    completed: bool


class PhasesResponse(BaseModel):
    current_phase_index: int
    volume_step: int
    price_increment: int
    max_steps: int
    phases: List[PhaseResponse]


class PositionResponse(BaseModel):
    position_id: int
    holder: Optional[str] = None
    activated: bool
    activation_time: Optional[float] = None
    cap_usd: int
    purchased: int
    rewarded: int
    airdropped: int
    total_allocation: int
    value_usd: int = Field(..., description="Total allocation at the current price (USD x 10^18)")
    releasing: bool
    settled: bool


class PurchaseReceiptResponse(BaseModel):
    buyer: str
    asset: str
    position_id: int
    paid_amount: int
    minted_amount: int
    price: int
    phase_index: int
    cycle: int
    phase_advanced: bool


class SettlementResponse(BaseModel):
    position_id: int
    burn_percent: int
    total_allocation: int
    burn_amount: int
    release_amount: int
    next_price: int
    stable_amount: int


class ReleaseResponse(BaseModel):
    position_id: int
    releasing: bool


class StatsResponse(BaseModel):
    total_sold: int
    total_supply: int
    total_burned: int
    total_stable_paid: int
    settled_positions: int
    cycle: int
    phase_index: int
    current_price: int
    supported_assets: List[str]


class EventResponse(BaseModel):
    sequence: int
    kind: str
    timestamp: float
    payload: Dict[str, Any]


class EventsResponse(BaseModel):
    run_id: str = Field(..., description="Identifies this process's notification numbering")
    total_count: int
    items: List[EventResponse]


class AssetResponse(BaseModel):
    symbol: str
    decimals: int
    reserve: Optional[int] = Field(None, description="Payout reserve; None for assets held outside the ledger")
    stable: bool


class AssetsResponse(BaseModel):
    items: List[AssetResponse]


class DepositResponse(BaseModel):
    symbol: str
    wallet: str
    balance: int


class ReserveResponse(BaseModel):
    symbol: str
    reserve: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
