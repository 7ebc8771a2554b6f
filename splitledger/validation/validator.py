"""
Ledger Input Validation

DESIGN DECISION: The balance engine does not validate its input - it is
total over anything that type-checks and treats a bad amount as the
caller's problem. Validation therefore happens here, at the point of
entry, BEFORE a request becomes a stored member or transaction.

Checks are split by what they protect:

STRUCTURAL (errors - block the request):
- Amount missing, zero, negative or not finite
- Payer / counterparty not a member of the group
- Settlement paid to oneself
- Unequal split amounts that don't add up to the expense
- Blank or duplicate member names
- Notes longer than the configured limit

PLAUSIBILITY (warnings - shown, never block):
- Unusually large amounts
- Unusually small amounts

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

import math
from typing import Optional

from splitledger.config import get_settings
from splitledger.models.ledger import (
    Group,
    SplitMode,
    ValidationIssue,
    ValidationResult,
)


class LedgerValidator:
    """
    Validates caller requests against the current group snapshot.
    """

    def __init__(self):
        self._settings = get_settings().app

    def _result(self, subject: str, issues: list[ValidationIssue]) -> ValidationResult:
        return ValidationResult(
            subject=subject,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=[issue.message for issue in issues if issue.severity == "warning"],
        )

    def _check_amount(self, amount: Optional[float]) -> list[ValidationIssue]:
        issues = []

        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
            return issues

        # NaN compares False against every bound below
        if not math.isfinite(amount):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a finite number",
                severity="error",
                suggested_fix="Enter a positive amount",
            ))
            return issues

        if amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter a positive amount",
            ))
            return issues

        if amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if amount < self._settings.settled_tolerance:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount}) is too small to ever need settling",
                severity="warning",
            ))

        return issues

    def _check_member(
        self,
        group: Group,
        member_id: Optional[str],
        field: str,
        role: str,
    ) -> list[ValidationIssue]:
        if not member_id:
            return [ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{role.capitalize()} is required",
                severity="error",
            )]
        if group.find_member(member_id) is None:
            return [ValidationIssue(
                field=field,
                issue_type="unknown_member",
                message=f"{role.capitalize()} is not a member of this group",
                severity="error",
                suggested_fix="Pick someone from the member list",
            )]
        return []

    def _check_note(self, note: str) -> list[ValidationIssue]:
        if len(note.strip()) > self._settings.max_note_length:
            return [ValidationIssue(
                field="note",
                issue_type="too_long",
                message=f"Note is longer than {self._settings.max_note_length} characters",
                severity="error",
                suggested_fix="Shorten the note",
            )]
        return []

    def validate_member(
        self,
        group: Group,
        name: str,
        email: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a new member before insertion.

        Names are compared case-insensitively after trimming.
        """
        issues = []
        trimmed = (name or "").strip()

        if not trimmed:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Member name cannot be empty",
                severity="error",
            ))
        elif group.find_member_by_name(trimmed) is not None:
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"A member named '{trimmed}' already exists",
                severity="error",
                suggested_fix="Use a different name, e.g. add an initial",
            ))

        if email and "@" not in email:
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message=f"'{email}' doesn't look like an email address",
                severity="warning",
            ))

        return self._result("member", issues)

    def validate_expense(
        self,
        group: Group,
        payer_id: Optional[str],
        amount: Optional[float],
        note: str = "",
        split_mode: Optional[SplitMode] = None,
        splits: Optional[dict[str, float]] = None,
    ) -> ValidationResult:
        """
        Validate an expense before it is recorded or edited.

        For unequal splits, every key must be a member and the values must
        add up to the amount within the settled tolerance.
        """
        issues = []
        issues.extend(self._check_member(group, payer_id, "payer_id", "payer"))
        issues.extend(self._check_amount(amount))
        issues.extend(self._check_note(note))

        if split_mode == SplitMode.UNEQUAL:
            issues.extend(self._check_splits(group, amount, splits))
        elif splits:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="inconsistent",
                message="Split amounts were given but the split mode is not 'unequal'",
                severity="error",
                suggested_fix="Choose the unequal split mode or remove the amounts",
            ))

        return self._result("expense", issues)

    def _check_splits(
        self,
        group: Group,
        amount: Optional[float],
        splits: Optional[dict[str, float]],
    ) -> list[ValidationIssue]:
        issues = []

        if not splits:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="missing",
                message="Unequal split needs an amount for at least one member",
                severity="error",
            ))
            return issues

        unknown = [member_id for member_id in splits if group.find_member(member_id) is None]
        if unknown:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="unknown_member",
                message=f"Split includes {len(unknown)} people who are not members",
                severity="error",
            ))

        if not all(math.isfinite(value) for value in splits.values()):
            issues.append(ValidationIssue(
                field="splits",
                issue_type="invalid_value",
                message="Split amounts must be finite numbers",
                severity="error",
            ))
        elif any(value < 0 for value in splits.values()):
            issues.append(ValidationIssue(
                field="splits",
                issue_type="invalid_value",
                message="Split amounts cannot be negative",
                severity="error",
            ))

        if amount is not None and math.isfinite(amount) and amount > 0:
            split_total = sum(splits.values())
            if abs(split_total - amount) > self._settings.settled_tolerance:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="split_mismatch",
                    message=(
                        f"Split amounts add up to {split_total:,.2f}, "
                        f"but the expense is {amount:,.2f}"
                    ),
                    severity="error",
                    suggested_fix="Adjust the split so it matches the total",
                ))

        issues.append(ValidationIssue(
            field="split_mode",
            issue_type="pooled_balance",
            message=(
                "Balances share all expenses equally; "
                "the per-person amounts are kept for reference"
            ),
            severity="info",
        ))

        return issues

    def validate_settlement(
        self,
        group: Group,
        payer_id: Optional[str],
        counterparty_id: Optional[str],
        amount: Optional[float],
    ) -> ValidationResult:
        """Validate a settlement payment from payer to counterparty."""
        issues = []
        issues.extend(self._check_member(group, payer_id, "payer_id", "payer"))
        issues.extend(
            self._check_member(group, counterparty_id, "counterparty_id", "receiver")
        )
        issues.extend(self._check_amount(amount))

        if payer_id and payer_id == counterparty_id:
            issues.append(ValidationIssue(
                field="counterparty_id",
                issue_type="self_payment",
                message="A member cannot settle with themselves",
                severity="error",
            ))

        return self._result("settlement", issues)

    def validate_budget(self, budget: Optional[float]) -> ValidationResult:
        """A budget may be cleared (None) but never negative."""
        issues = []
        if budget is not None and not math.isfinite(budget):
            issues.append(ValidationIssue(
                field="budget",
                issue_type="invalid_value",
                message="Budget must be a finite number",
                severity="error",
            ))
        elif budget is not None and budget < 0:
            issues.append(ValidationIssue(
                field="budget",
                issue_type="invalid_value",
                message="Budget cannot be negative",
                severity="error",
            ))
        return self._result("budget", issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if not result.is_valid:
            lines.append("❌ This can't be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
