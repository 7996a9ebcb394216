"""Dashboard and metrics response schemas."""

from datetime import datetime

from pydantic import BaseModel


class DashboardStats(BaseModel):
    threads_by_status: dict[str, int]
    total_threads: int
    pending_approvals: int
    sends_last_24h: int
    messages_last_24h: int
    total_clients: int
    total_properties: int


class MessageMetrics(BaseModel):
    total: int
    this_month: int
    today: int


class ApprovalMetrics(BaseModel):
    total: int
    approved: int
    rejected: int
    pending: int
    approval_rate: int  # percent of all approvals that were approved


class PerformanceMetrics(BaseModel):
    avg_response_time_seconds: int
    avg_approval_time_seconds: int


class RiskMetrics(BaseModel):
    high_risk_this_month: int


class MetricsResponse(BaseModel):
    messages: MessageMetrics
    approvals: ApprovalMetrics
    performance: PerformanceMetrics
    risks: RiskMetrics
    generated_at: datetime
