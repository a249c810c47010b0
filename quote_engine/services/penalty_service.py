"""SLA violation detection, penalty application and disputes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError, OperationalError

from quote_engine.auth.ownership import Principal, enforce_owner
from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import (
    ContractorQuote,
    DisputeResolution,
    PenalizedParty,
    Penalty,
    PenaltyRule,
    PenaltyStatus,
    PenaltyType,
    QuoteRequest,
    QuoteRequestStatus,
    Severity,
    SLAViolation,
    TransactionType,
    ViolationSource,
    ViolationStatus,
    utcnow,
)
from quote_engine.orchestration.state_machine import PENALTY_MACHINE
from quote_engine.services.base_service import BaseService
from quote_engine.services.financial_engine import ZERO, percent_of, to_money
from quote_engine.services.penalty_rules import PenaltyRuleService, calculate_rule_amount
from quote_engine.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 10

REPORTABLE_TYPES = {
    PenaltyType.QUALITY_ISSUE,
    PenaltyType.COMMUNICATION_FAILURE,
    PenaltyType.DOCUMENTATION_ISSUE,
}

STATISTICS_PERIODS = ("last_7_days", "last_30_days", "last_90_days", "this_year")


def severity_for_days(days_overdue: int) -> Severity:
    if days_overdue <= 3:
        return Severity.MINOR
    if days_overdue <= 7:
        return Severity.MODERATE
    if days_overdue <= 14:
        return Severity.MAJOR
    return Severity.CRITICAL


def build_fingerprint(request_id: int, penalty_type: PenaltyType, window: date | datetime) -> str:
    """Idempotency key for one violation of one type in one detection window."""
    day = window.date() if isinstance(window, datetime) else window
    return f"{request_id}:{penalty_type.value}:{day.isoformat()}"


@dataclass(frozen=True)
class DetectedViolation:
    request_id: int
    quotation_id: int
    contractor_id: int
    violation_type: PenaltyType
    deadline: datetime
    days_overdue: int
    severity: Severity
    fingerprint: str
    rule_id: int | None
    auto_apply: bool


@dataclass(frozen=True)
class PenaltyOutcome:
    penalty: Penalty
    created: bool


class PenaltyService(BaseService):
    """Detection, application and the dispute lifecycle of penalties."""

    @property
    def wallets(self) -> WalletService:
        return WalletService(db=self.db, config=self.config)

    @property
    def rules(self) -> PenaltyRuleService:
        return PenaltyRuleService(db=self.db, config=self.config)

    # -- detection ---------------------------------------------------------

    def detect_violations(self, now: datetime | None = None) -> list[DetectedViolation]:
        """Find selected installations whose deadline plus grace has passed unmet."""
        now = now or utcnow()
        rows = (
            self.db.query(QuoteRequest, ContractorQuote)
            .join(ContractorQuote, ContractorQuote.id == QuoteRequest.selected_quotation_id)
            .filter(
                QuoteRequest.status.in_([QuoteRequestStatus.QUOTE_SELECTED, QuoteRequestStatus.COMPLETED]),
                QuoteRequest.installation_deadline.is_not(None),
                QuoteRequest.installation_deadline < now,
                QuoteRequest.installation_completed_at.is_(None),
            )
            .order_by(QuoteRequest.id)
            .all()
        )

        detected = []
        for request, quotation in rows:
            overdue = now - request.installation_deadline
            days_overdue = max(overdue.days, 1)
            severity = severity_for_days(days_overdue)
            rule = self.rules.match_rule(PenaltyType.LATE_INSTALLATION, severity)
            grace = timedelta(hours=rule.grace_period_hours if rule else 0)
            if overdue <= grace:
                continue
            detected.append(
                DetectedViolation(
                    request_id=request.id,
                    quotation_id=quotation.id,
                    contractor_id=quotation.contractor_id,
                    violation_type=PenaltyType.LATE_INSTALLATION,
                    deadline=request.installation_deadline,
                    days_overdue=days_overdue,
                    severity=severity,
                    fingerprint=build_fingerprint(
                        request.id, PenaltyType.LATE_INSTALLATION, request.installation_deadline
                    ),
                    rule_id=rule.id if rule else None,
                    auto_apply=bool(rule and rule.auto_apply),
                )
            )
        if not detected:
            return detected
        # Violations already penalized or dismissed are settled for this deadline.
        settled = {
            fingerprint
            for (fingerprint,) in self.db.query(SLAViolation.fingerprint).filter(
                SLAViolation.fingerprint.in_([item.fingerprint for item in detected]),
                SLAViolation.status != ViolationStatus.OPEN,
            )
        }
        return [item for item in detected if item.fingerprint not in settled]

    def record_violation(self, detected: DetectedViolation) -> SLAViolation:
        """Insert or refresh the violation row for a detection (no commit)."""
        violation = self.db.query(SLAViolation).filter(SLAViolation.fingerprint == detected.fingerprint).one_or_none()
        if violation is not None:
            violation.days_overdue = detected.days_overdue
            violation.last_seen_at = utcnow()
            return violation
        violation = SLAViolation(
            fingerprint=detected.fingerprint,
            request_id=detected.request_id,
            quotation_id=detected.quotation_id,
            contractor_id=detected.contractor_id,
            violation_type=detected.violation_type,
            severity=detected.severity,
            days_overdue=detected.days_overdue,
            source=ViolationSource.SCHEDULER,
            description=f"Installation {detected.days_overdue} day(s) past deadline {detected.deadline.date()}",
        )
        self.db.add(violation)
        self.db.flush()
        logger.info(
            "sla_violation.detected",
            extra={
                "event": "sla_violation.detected",
                "violation_id": violation.id,
                "request_id": detected.request_id,
                "contractor_id": detected.contractor_id,
                "days_overdue": detected.days_overdue,
                "severity": detected.severity.value,
            },
        )
        return violation

    def apply_detected(self, detected: DetectedViolation) -> tuple[SLAViolation, PenaltyOutcome | None]:
        """Record a detection and apply its penalty when the matched rule is automatic."""
        violation = self.record_violation(detected)
        if not detected.auto_apply or violation.status != ViolationStatus.OPEN:
            self.commit()
            return violation, None

        rule = self.rules.get_rule(detected.rule_id)
        quotation = self.db.get(ContractorQuote, detected.quotation_id)
        amount, snapshot = calculate_rule_amount(rule, quotation.base_price, detected.days_overdue)
        outcome = self._record_contractor_penalty(
            fingerprint=violation.fingerprint,
            penalty_type=detected.violation_type,
            severity=detected.severity,
            contractor_id=detected.contractor_id,
            request_id=detected.request_id,
            quotation_id=detected.quotation_id,
            amount=amount,
            calculation=snapshot,
            description=violation.description or "Late installation",
            evidence=[],
            rule=rule,
            violation=violation,
            actor_id=None,
            is_automatic=True,
        )
        self.commit()
        return violation, outcome

    def report_violation(
        self,
        principal: Principal,
        request_id: int,
        violation_type: PenaltyType,
        description: str,
        evidence: list[str] | None = None,
    ) -> SLAViolation:
        """Log a manually reported issue against the selected contractor; never auto-applied."""
        if violation_type not in REPORTABLE_TYPES:
            raise ValidationError(f"{violation_type.value} cannot be reported manually.")
        if len((description or "").strip()) < MIN_REASON_LENGTH:
            raise ValidationError(f"Description must be at least {MIN_REASON_LENGTH} characters.")

        request = self.db.get(QuoteRequest, request_id)
        if request is None:
            raise NotFoundError(f"Quote request not found: {request_id}")
        enforce_owner(request.user_id, principal, "Quote request", request_id)
        if request.selected_quotation_id is None:
            raise ConflictError("Violations can only be reported once a quotation is selected.")
        quotation = self.db.get(ContractorQuote, request.selected_quotation_id)

        fingerprint = build_fingerprint(request_id, violation_type, utcnow())
        if self.db.query(SLAViolation.id).filter(SLAViolation.fingerprint == fingerprint).first() is not None:
            raise ConflictError(f"{violation_type.value} was already reported today for request {request_id}.")
        rule = self.rules.match_rule(violation_type)
        violation = SLAViolation(
            fingerprint=fingerprint,
            request_id=request_id,
            quotation_id=quotation.id,
            contractor_id=quotation.contractor_id,
            violation_type=violation_type,
            severity=rule.severity if rule else Severity.MODERATE,
            source=ViolationSource.REPORT,
            description=description.strip(),
            evidence=list(evidence or []),
            reported_by=principal.user_id,
        )
        self.db.add(violation)
        self.commit()
        logger.info(
            "sla_violation.reported",
            extra={
                "event": "sla_violation.reported",
                "violation_id": violation.id,
                "request_id": request_id,
                "violation_type": violation_type.value,
                "reported_by": principal.user_id,
            },
        )
        return violation

    def list_violations(self, status: ViolationStatus | None = None, limit: int = 50, offset: int = 0) -> list[SLAViolation]:
        query = self.db.query(SLAViolation)
        if status is not None:
            query = query.filter(SLAViolation.status == status)
        return query.order_by(SLAViolation.id.desc()).offset(offset).limit(limit).all()

    # -- application -------------------------------------------------------

    def apply_penalty(
        self,
        actor_id: int,
        contractor_id: int,
        quotation_id: int,
        penalty_type: PenaltyType,
        description: str | None,
        custom_amount: Any = None,
        evidence: list[str] | None = None,
        violation_id: int | None = None,
    ) -> PenaltyOutcome:
        """Admin-initiated penalty, idempotent on the violation fingerprint."""
        if penalty_type == PenaltyType.USER_CANCELLATION:
            raise ValidationError("User cancellation penalties are assessed on cancellation only.")
        if not (description or "").strip():
            raise ValidationError("A description is required when applying a penalty.")
        if custom_amount is not None and to_money(custom_amount) <= ZERO:
            raise ValidationError("custom_amount must be greater than zero.")

        quotation = self.db.get(ContractorQuote, quotation_id)
        if quotation is None:
            raise NotFoundError(f"Quotation not found: {quotation_id}")
        if quotation.contractor_id != contractor_id:
            raise ValidationError("Quotation does not belong to the given contractor.")
        request = self.db.get(QuoteRequest, quotation.request_id)

        violation = None
        if violation_id is not None:
            violation = self.db.get(SLAViolation, violation_id)
            if violation is None:
                raise NotFoundError(f"Violation not found: {violation_id}")
            if violation.quotation_id != quotation_id or violation.violation_type != penalty_type:
                raise ValidationError("Violation does not match the quotation and penalty type.")
            fingerprint = violation.fingerprint
            severity = violation.severity
            days_overdue = violation.days_overdue
        else:
            window = request.installation_deadline if penalty_type == PenaltyType.LATE_INSTALLATION else None
            fingerprint = build_fingerprint(request.id, penalty_type, window or utcnow())
            days_overdue = 0
            if request.installation_deadline is not None:
                days_overdue = max((utcnow() - request.installation_deadline).days, 0)
            severity = severity_for_days(days_overdue) if penalty_type == PenaltyType.LATE_INSTALLATION else None

        rule = self.rules.match_rule(penalty_type, severity)
        if custom_amount is not None:
            amount = to_money(custom_amount)
            calculation = {"custom_amount": str(amount), "rule_id": rule.id if rule else None}
        elif rule is not None:
            amount, calculation = calculate_rule_amount(rule, quotation.base_price, days_overdue)
        else:
            raise ValidationError(f"No active rule for {penalty_type.value}; provide custom_amount.")

        try:
            outcome = self._record_contractor_penalty(
                fingerprint=fingerprint,
                penalty_type=penalty_type,
                severity=severity or (rule.severity if rule else Severity.MODERATE),
                contractor_id=contractor_id,
                request_id=request.id,
                quotation_id=quotation.id,
                amount=amount,
                calculation=calculation,
                description=description.strip(),
                evidence=list(evidence or []),
                rule=rule,
                violation=violation,
                actor_id=actor_id,
                is_automatic=False,
            )
        except OperationalError as exc:
            self.rollback()
            raise ConflictError(f"Concurrent penalty write for {fingerprint}; retry.") from exc
        except ConflictError:
            self.rollback()
            raise
        self.commit()
        return outcome

    def _find_by_fingerprint(self, fingerprint: str) -> Penalty | None:
        return self.db.query(Penalty).filter(Penalty.fingerprint == fingerprint).one_or_none()

    def _insert_penalty(self, penalty: Penalty) -> PenaltyOutcome:
        existing = self._find_by_fingerprint(penalty.fingerprint)
        if existing is not None:
            return PenaltyOutcome(penalty=existing, created=False)
        try:
            with self.db.begin_nested():
                self.db.add(penalty)
        except IntegrityError:
            existing = self._find_by_fingerprint(penalty.fingerprint)
            if existing is None:
                raise
            return PenaltyOutcome(penalty=existing, created=False)
        return PenaltyOutcome(penalty=penalty, created=True)

    def _record_contractor_penalty(
        self,
        fingerprint: str,
        penalty_type: PenaltyType,
        severity: Severity,
        contractor_id: int,
        request_id: int,
        quotation_id: int | None,
        amount: Decimal,
        calculation: dict[str, Any],
        description: str,
        evidence: list[str],
        rule: PenaltyRule | None,
        violation: SLAViolation | None,
        actor_id: int | None,
        is_automatic: bool,
    ) -> PenaltyOutcome:
        """Insert the penalty and its wallet debit in the caller's transaction."""
        outcome = self._insert_penalty(
            Penalty(
                fingerprint=fingerprint,
                penalty_type=penalty_type,
                severity=severity,
                status=PenaltyStatus.APPLIED,
                penalized_party=PenalizedParty.CONTRACTOR,
                contractor_id=contractor_id,
                request_id=request_id,
                quotation_id=quotation_id,
                violation_id=violation.id if violation else None,
                rule_id=rule.id if rule else None,
                rule_version=rule.version if rule else None,
                amount=amount,
                contractor_share=ZERO,
                platform_share=amount,
                calculation=calculation,
                description=description,
                evidence=evidence,
                is_automatic=is_automatic,
                applied_by=actor_id,
            )
        )
        if not outcome.created:
            logger.info(
                "penalty.apply.duplicate",
                extra={"event": "penalty.apply.duplicate", "fingerprint": fingerprint, "penalty_id": outcome.penalty.id},
            )
            return outcome

        penalty = outcome.penalty
        debit = self.wallets.post_transaction(
            contractor_id=contractor_id,
            transaction_type=TransactionType.PENALTY,
            amount=-amount,
            reference_type="penalty",
            reference_id=penalty.id,
            description=f"{penalty_type.value} penalty",
            actor_id=actor_id,
        )
        penalty.debit_transaction_id = debit.id
        if violation is not None:
            violation.status = ViolationStatus.PENALIZED
            violation.penalty_id = penalty.id
        logger.info(
            "penalty.applied",
            extra={
                "event": "penalty.applied",
                "penalty_id": penalty.id,
                "fingerprint": fingerprint,
                "penalty_type": penalty_type.value,
                "contractor_id": contractor_id,
                "amount": str(amount),
                "automatic": is_automatic,
            },
        )
        return outcome

    def record_user_cancellation_penalty(
        self,
        request: QuoteRequest,
        beneficiary_contractor_id: int | None,
        amount: Decimal,
        actor_id: int,
    ) -> PenaltyOutcome:
        """Assess the requester for a late cancellation; users carry no wallet."""
        share = percent_of(amount, self.config.CANCELLATION_CONTRACTOR_SHARE_PERCENT)
        outcome = self._insert_penalty(
            Penalty(
                fingerprint=build_fingerprint(request.id, PenaltyType.USER_CANCELLATION, utcnow()),
                penalty_type=PenaltyType.USER_CANCELLATION,
                severity=Severity.MODERATE,
                status=PenaltyStatus.APPLIED,
                penalized_party=PenalizedParty.USER,
                contractor_id=beneficiary_contractor_id,
                user_id=request.user_id,
                request_id=request.id,
                quotation_id=request.selected_quotation_id,
                amount=to_money(amount),
                contractor_share=share,
                platform_share=to_money(amount) - share,
                calculation={
                    "cancellation_amount": str(to_money(amount)),
                    "contractor_share_percent": str(self.config.CANCELLATION_CONTRACTOR_SHARE_PERCENT),
                },
                description=f"Cancellation after contractor acceptance: {request.cancellation_reason}",
                evidence=[],
                is_automatic=True,
                applied_by=actor_id,
            )
        )
        if outcome.created:
            logger.info(
                "penalty.applied",
                extra={
                    "event": "penalty.applied",
                    "penalty_id": outcome.penalty.id,
                    "penalty_type": PenaltyType.USER_CANCELLATION.value,
                    "user_id": request.user_id,
                    "amount": str(outcome.penalty.amount),
                },
            )
        return outcome

    def record_contractor_cancellation_penalty(
        self, request: QuoteRequest, contractor_id: int, actor_id: int
    ) -> PenaltyOutcome:
        rule = self.rules.match_rule(PenaltyType.CONTRACTOR_CANCELLATION)
        if rule is None:
            raise ValidationError("No active contractor cancellation rule.")
        quotation = None
        if request.selected_quotation_id is not None:
            quotation = self.db.get(ContractorQuote, request.selected_quotation_id)
        base_price = quotation.base_price if quotation is not None else None
        amount, calculation = calculate_rule_amount(rule, base_price)
        return self._record_contractor_penalty(
            fingerprint=build_fingerprint(request.id, PenaltyType.CONTRACTOR_CANCELLATION, utcnow()),
            penalty_type=PenaltyType.CONTRACTOR_CANCELLATION,
            severity=rule.severity,
            contractor_id=contractor_id,
            request_id=request.id,
            quotation_id=quotation.id if quotation is not None else None,
            amount=amount,
            calculation=calculation,
            description=f"Request cancelled by admin: {request.cancellation_reason}",
            evidence=[],
            rule=rule,
            violation=None,
            actor_id=actor_id,
            is_automatic=False,
        )

    # -- disputes ----------------------------------------------------------

    def get_penalty(self, penalty_id: int, principal: Principal) -> Penalty:
        penalty = self.db.get(Penalty, penalty_id)
        if penalty is None:
            raise NotFoundError(f"Penalty not found: {penalty_id}")
        if not principal.is_admin:
            contractor_penalty = penalty.penalized_party == PenalizedParty.CONTRACTOR
            if principal.is_contractor != contractor_penalty:
                raise NotFoundError(f"Penalty not found: {penalty_id}")
            owner = penalty.contractor_id if contractor_penalty else penalty.user_id
            enforce_owner(owner, principal, "Penalty", penalty_id)
        return penalty

    def dispute_penalty(self, penalty_id: int, principal: Principal, reason: str) -> Penalty:
        if len((reason or "").strip()) < MIN_REASON_LENGTH:
            raise ValidationError(f"Dispute reason must be at least {MIN_REASON_LENGTH} characters.")
        penalty = self.get_penalty(penalty_id, principal)
        penalty = self.lock_row(Penalty, penalty.id, "Penalty")
        try:
            if penalty.resolved_at is not None:
                raise ConflictError(f"Penalty {penalty_id} dispute was already resolved.")
            PENALTY_MACHINE.assert_transition(penalty.status, PenaltyStatus.DISPUTED)
        except Exception:
            self.rollback()
            raise

        penalty.status = PenaltyStatus.DISPUTED
        penalty.dispute_reason = reason.strip()
        penalty.disputed_by = principal.user_id
        penalty.disputed_at = utcnow()
        self.commit()
        logger.info(
            "penalty.disputed",
            extra={"event": "penalty.disputed", "penalty_id": penalty_id, "disputed_by": principal.user_id},
        )
        return penalty

    def resolve_dispute(
        self,
        penalty_id: int,
        actor_id: int,
        resolution: DisputeResolution,
        resolution_notes: str,
        adjusted_amount: Any = None,
    ) -> Penalty:
        """Close a dispute; wallet effects are always new ledger rows."""
        if len((resolution_notes or "").strip()) < MIN_REASON_LENGTH:
            raise ValidationError(f"Resolution notes must be at least {MIN_REASON_LENGTH} characters.")
        if adjusted_amount is not None and resolution != DisputeResolution.MODIFY:
            raise ValidationError("adjusted_amount is only accepted with the modify resolution.")
        new_amount = None
        if adjusted_amount is not None:
            new_amount = to_money(adjusted_amount)
            if new_amount <= ZERO:
                raise ValidationError("adjusted_amount must be greater than zero; waive the penalty instead.")

        penalty = self.lock_row(Penalty, penalty_id, "Penalty")
        try:
            if penalty.status != PenaltyStatus.DISPUTED:
                raise ConflictError(f"Penalty {penalty_id} is not under dispute (status {penalty.status.value}).")

            target = PenaltyStatus.WAIVED if resolution == DisputeResolution.WAIVE else PenaltyStatus.APPLIED
            PENALTY_MACHINE.assert_transition(penalty.status, target)
            has_wallet = (
                penalty.penalized_party == PenalizedParty.CONTRACTOR and penalty.debit_transaction_id is not None
            )

            if resolution == DisputeResolution.WAIVE and has_wallet:
                refund = self.wallets.post_transaction(
                    contractor_id=penalty.contractor_id,
                    transaction_type=TransactionType.REFUND,
                    amount=penalty.effective_amount,
                    reference_type="penalty",
                    reference_id=penalty.id,
                    description=f"Waiver of penalty {penalty.id}",
                    actor_id=actor_id,
                )
                penalty.refund_transaction_id = refund.id
            elif resolution == DisputeResolution.MODIFY and new_amount is not None:
                difference = penalty.effective_amount - new_amount
                if difference != ZERO and has_wallet:
                    adjustment = self.wallets.post_transaction(
                        contractor_id=penalty.contractor_id,
                        transaction_type=TransactionType.ADJUSTMENT,
                        amount=difference,
                        reference_type="penalty",
                        reference_id=penalty.id,
                        description=f"Adjustment of penalty {penalty.id} to {new_amount}",
                        actor_id=actor_id,
                    )
                    penalty.adjustment_transaction_id = adjustment.id
                penalty.adjusted_amount = new_amount
                if penalty.penalized_party == PenalizedParty.CONTRACTOR:
                    penalty.platform_share = new_amount
                else:
                    penalty.contractor_share = percent_of(
                        new_amount, self.config.CANCELLATION_CONTRACTOR_SHARE_PERCENT
                    )
                    penalty.platform_share = new_amount - penalty.contractor_share

            penalty.status = target
            penalty.resolution = resolution
            penalty.resolution_notes = resolution_notes.strip()
            penalty.resolved_by = actor_id
            penalty.resolved_at = utcnow()
        except Exception:
            self.rollback()
            raise
        self.commit()
        logger.info(
            "penalty.resolved",
            extra={
                "event": "penalty.resolved",
                "penalty_id": penalty_id,
                "resolution": resolution.value,
                "status": target.value,
                "effective_amount": str(penalty.effective_amount),
                "actor_id": actor_id,
            },
        )
        return penalty

    # -- reads -------------------------------------------------------------

    def list_penalties(
        self,
        principal: Principal,
        contractor_id: int | None = None,
        status: PenaltyStatus | None = None,
        penalty_type: PenaltyType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Penalty], int]:
        query = self.db.query(Penalty)
        if principal.is_admin:
            if contractor_id is not None:
                query = query.filter(Penalty.contractor_id == contractor_id)
        else:
            query = query.filter(
                Penalty.penalized_party == PenalizedParty.CONTRACTOR,
                Penalty.contractor_id == principal.user_id,
            )
        if status is not None:
            query = query.filter(Penalty.status == status)
        if penalty_type is not None:
            query = query.filter(Penalty.penalty_type == penalty_type)
        total = query.count()
        items = query.order_by(Penalty.id.desc()).offset(offset).limit(limit).all()
        return items, total

    def statistics(self, period: str = "last_30_days", now: datetime | None = None) -> dict[str, Any]:
        if period not in STATISTICS_PERIODS:
            raise ValidationError(f"period must be one of {', '.join(STATISTICS_PERIODS)}.")
        now = now or utcnow()
        if period == "this_year":
            start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        else:
            start = now - timedelta(days=int(period.split("_")[1]))

        penalties = (
            self.db.query(Penalty).filter(Penalty.applied_at >= start, Penalty.applied_at <= now).all()
        )
        by_status = {status.value: 0 for status in PenaltyStatus}
        by_type: dict[str, dict[str, Any]] = {}
        total_applied = ZERO
        disputed_ever = 0
        for penalty in penalties:
            by_status[penalty.status.value] += 1
            bucket = by_type.setdefault(penalty.penalty_type.value, {"count": 0, "amount": ZERO})
            bucket["count"] += 1
            if penalty.status != PenaltyStatus.WAIVED:
                bucket["amount"] += penalty.effective_amount
                total_applied += penalty.effective_amount
            if penalty.disputed_at is not None:
                disputed_ever += 1

        count = len(penalties)
        charged = count - by_status[PenaltyStatus.WAIVED.value]
        return {
            "period": period,
            "start": start,
            "end": now,
            "total_penalties": count,
            "by_status": by_status,
            "by_type": by_type,
            "total_applied_amount": total_applied,
            "average_amount": to_money(total_applied / charged) if charged else ZERO,
            "dispute_rate": round(disputed_ever / count, 4) if count else 0.0,
            "waiver_rate": round(by_status[PenaltyStatus.WAIVED.value] / count, 4) if count else 0.0,
            "automatic_count": sum(1 for penalty in penalties if penalty.is_automatic),
        }

