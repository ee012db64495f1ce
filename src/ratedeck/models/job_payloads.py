"""Typed job payloads, one model per job type."""

from typing import Any, Literal

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from ratedeck.errors.exceptions import ValidationError
from ratedeck.models.az_destination import AzDestinationInput
from ratedeck.models.common import CamelModel
from ratedeck.models.enums import ImportMode, JobType, SyncDirection


class BaseJobPayload(CamelModel):
    user_id: str | None = None
    customer_id: str | None = None
    enqueued_at: str | None = None


class RateCardImportPayload(BaseJobPayload):
    rate_card_id: str
    file_url: str
    options: dict[str, Any] | None = None


class RateCardExportPayload(BaseJobPayload):
    rate_card_id: str
    format: Literal["csv", "xlsx"]


class ConnexCSSyncPayload(BaseJobPayload):
    carrier_id: str | None = None
    direction: SyncDirection


class DIDProvisionPayload(BaseJobPayload):
    did_id: str
    provider_id: str | None = None


class DIDBulkProvisionPayload(BaseJobPayload):
    did_ids: list[str]


class DIDReleasePayload(BaseJobPayload):
    did_id: str


class InvoiceGeneratePayload(BaseJobPayload):
    period: str
    target_customer_id: str | None = None


class InvoiceBulkGeneratePayload(BaseJobPayload):
    period: str
    customer_ids: list[str]


class EmailSendPayload(BaseJobPayload):
    to: str
    subject: str
    template: str
    variables: dict[str, Any] | None = None


class EmailBulkSendPayload(BaseJobPayload):
    recipients: list[str]
    template: str
    variables: dict[str, Any] | None = None


class ReportGeneratePayload(BaseJobPayload):
    report_type: str
    parameters: dict[str, Any] | None = None


class AIVoiceKBTrainPayload(BaseJobPayload):
    knowledge_base_id: str
    agent_id: str


class AIVoiceKBIndexPayload(BaseJobPayload):
    knowledge_base_id: str
    source_id: str
    source_type: Literal["document", "url", "text"]


class AIVoiceCampaignStartPayload(BaseJobPayload):
    campaign_id: str


class AIVoiceCampaignCallPayload(BaseJobPayload):
    campaign_id: str
    contact_id: str
    phone_number: str


class AIVoiceAgentSyncPayload(BaseJobPayload):
    agent_id: str
    direction: Literal["push", "pull"]


class WebhookDeliverPayload(BaseJobPayload):
    webhook_id: str
    url: str
    event_type: str
    event_data: dict[str, Any]


class FXRateUpdatePayload(BaseJobPayload):
    base_currency: str | None = None


class BillingReconcilePayload(BaseJobPayload):
    period: str


class AuditCleanupPayload(BaseJobPayload):
    older_than_days: int = Field(..., ge=1)


class CDRProcessPayload(BaseJobPayload):
    batch_id: str
    record_count: int = Field(..., ge=0)


class AzDestinationImportPayload(BaseJobPayload):
    mode: ImportMode
    destinations: list[AzDestinationInput]
    total_records: int = Field(..., ge=0)


class AzDestinationDeleteAllPayload(BaseJobPayload):
    total_records: int | None = None


class TrashRestorePayload(BaseJobPayload):
    trash_id: str
    table_name: str
    record_id: str


class TrashPurgePayload(BaseJobPayload):
    purge_type: Literal["expired", "all"]


PAYLOAD_MODELS: dict[JobType, type[BaseJobPayload]] = {
    JobType.RATE_CARD_IMPORT: RateCardImportPayload,
    JobType.RATE_CARD_EXPORT: RateCardExportPayload,
    JobType.CONNEXCS_SYNC_CUSTOMER: ConnexCSSyncPayload,
    JobType.CONNEXCS_SYNC_CARRIER: ConnexCSSyncPayload,
    JobType.CONNEXCS_SYNC_ALL: ConnexCSSyncPayload,
    JobType.DID_PROVISION: DIDProvisionPayload,
    JobType.DID_BULK_PROVISION: DIDBulkProvisionPayload,
    JobType.DID_RELEASE: DIDReleasePayload,
    JobType.INVOICE_GENERATE: InvoiceGeneratePayload,
    JobType.INVOICE_BULK_GENERATE: InvoiceBulkGeneratePayload,
    JobType.EMAIL_SEND: EmailSendPayload,
    JobType.EMAIL_BULK_SEND: EmailBulkSendPayload,
    JobType.REPORT_GENERATE: ReportGeneratePayload,
    JobType.AI_VOICE_KB_TRAIN: AIVoiceKBTrainPayload,
    JobType.AI_VOICE_KB_INDEX: AIVoiceKBIndexPayload,
    JobType.AI_VOICE_CAMPAIGN_START: AIVoiceCampaignStartPayload,
    JobType.AI_VOICE_CAMPAIGN_CALL: AIVoiceCampaignCallPayload,
    JobType.AI_VOICE_AGENT_SYNC: AIVoiceAgentSyncPayload,
    JobType.WEBHOOK_DELIVER: WebhookDeliverPayload,
    JobType.FX_RATE_UPDATE: FXRateUpdatePayload,
    JobType.BILLING_RECONCILE: BillingReconcilePayload,
    JobType.AUDIT_CLEANUP: AuditCleanupPayload,
    JobType.CDR_PROCESS: CDRProcessPayload,
    JobType.AZ_DESTINATION_IMPORT: AzDestinationImportPayload,
    JobType.AZ_DESTINATION_DELETE_ALL: AzDestinationDeleteAllPayload,
    JobType.TRASH_RESTORE: TrashRestorePayload,
    JobType.TRASH_PURGE: TrashPurgePayload,
}


def parse_payload(job_type: JobType | str, payload: dict | None) -> BaseJobPayload:
    """Parse a raw payload into the model registered for its job type.

    Raises pydantic's ValidationError for a malformed payload; callers on the
    request path should use validate_payload instead.
    """
    model = PAYLOAD_MODELS[JobType(job_type)]
    return model.model_validate(payload or {})


def validate_payload(job_type: JobType | str, payload: dict | None) -> BaseJobPayload:
    """Validate a payload for enqueueing, raising an API ValidationError."""
    try:
        return parse_payload(job_type, payload)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid payload for job type '{job_type}'",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc
