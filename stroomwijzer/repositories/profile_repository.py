"""
Repository for profile records in sqlite.
Maps Profile fields onto the flat ``profiles`` table and back.
"""

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, Optional

import pandas as pd
import pytz

from .base_repository import BaseProfileRepository
from ..config import DatabaseManager
from ..exceptions import PersistenceFailed, ProfileNotFound, ProfileStateError
from ..models import (
    ContractSnapshot,
    HouseholdProfile,
    PendingExtraction,
    PriceCheckResult,
    Profile,
    SubscriptionTier,
    UsageEstimate,
    VerifiedUsage
)


def _clean(value: Any) -> Any:
    """Convert pandas missing values (NaN/None) to None."""
    if value is None:
        return None
    if not isinstance(value, (str, bytes)) and pd.isna(value):
        return None
    return value


def _json_list(value: Any) -> list:
    value = _clean(value)
    return json.loads(value) if value else []


def _columns_for(field: str, value: Any) -> Dict[str, Any]:
    """Translate one Profile field into the table columns that store it."""
    if field in ("email", "zipcode", "house_number", "motivation"):
        return {field: value}

    if field == "household":
        household: HouseholdProfile = value
        return {
            "household_size": household.household_size.value,
            "house_type": household.dwelling_type.value,
            "work_from_home": int(household.works_from_home),
            "heat_pump": int(household.has_heat_pump),
            "district_heating": int(household.has_district_heating),
            "solar_panels": int(household.has_solar_panels),
        }

    if field == "contract":
        contract: ContractSnapshot = value
        return {
            "current_provider": contract.provider_name,
            "current_contract_type": contract.contract_type.value,
            "monthly_cost": contract.monthly_cost_eur,
        }

    if field == "estimate":
        estimate: Optional[UsageEstimate] = value
        if estimate is None:
            return {
                "estimated_kwh_per_month": None,
                "estimated_per_kwh_rate": None,
                "estimate_confidence": None,
                "estimate_assumptions": None,
                "estimate_reasoning": None,
            }
        return {
            "estimated_kwh_per_month": estimate.kwh_per_month,
            "estimated_per_kwh_rate": estimate.rate_per_kwh,
            "estimate_confidence": estimate.confidence.value,
            "estimate_assumptions": json.dumps(estimate.assumptions),
            "estimate_reasoning": estimate.reasoning,
        }

    if field == "verified_usage":
        verified: Optional[VerifiedUsage] = value
        if verified is None:
            # Verification is terminal; the store refuses to clear it
            raise ProfileStateError("Verified usage cannot be removed from a profile")
        return {
            "verified_kwh_per_month": verified.kwh_per_month,
            "verified_per_kwh_rate": verified.rate_per_kwh,
            "verified_provider": verified.provider_name,
            "verified_contract_type": verified.contract_type.value,
            "verified_confidence": verified.confidence.value,
            "verified_warnings": json.dumps(verified.warnings),
            "verified_at": verified.verified_at.isoformat() if verified.verified_at else None,
        }

    if field == "pending_extraction":
        pending: Optional[PendingExtraction] = value
        return {"pending_extraction": pending.model_dump_json() if pending else None}

    if field == "latest_price_check":
        result: Optional[PriceCheckResult] = value
        return {"latest_price_check": result.model_dump_json() if result else None}

    if field == "subscription_tier":
        return {"subscription_status": SubscriptionTier(value).value}

    if field in ("created_at", "updated_at"):
        return {field: value.isoformat()}

    raise ValueError(f"Unknown profile field: {field}")


def _row_to_profile(row: pd.Series) -> Profile:
    estimate = None
    if _clean(row["estimated_kwh_per_month"]) is not None:
        estimate = UsageEstimate(
            kwh_per_month=int(row["estimated_kwh_per_month"]),
            rate_per_kwh=float(row["estimated_per_kwh_rate"]),
            confidence=row["estimate_confidence"],
            assumptions=_json_list(row["estimate_assumptions"]),
            reasoning=_clean(row["estimate_reasoning"]) or "",
        )

    verified = None
    if _clean(row["verified_kwh_per_month"]) is not None:
        verified_at = _clean(row["verified_at"])
        verified = VerifiedUsage(
            kwh_per_month=float(row["verified_kwh_per_month"]),
            rate_per_kwh=float(row["verified_per_kwh_rate"]),
            provider_name=_clean(row["verified_provider"]),
            contract_type=row["verified_contract_type"],
            confidence=row["verified_confidence"],
            warnings=_json_list(row["verified_warnings"]),
            verified_at=datetime.fromisoformat(verified_at) if verified_at else None,
        )

    price_check = _clean(row["latest_price_check"])
    pending = _clean(row["pending_extraction"])

    return Profile(
        user_id=row["user_id"],
        email=row["email"],
        zipcode=row["zipcode"],
        house_number=row["house_number"],
        motivation=_clean(row["motivation"]),
        household=HouseholdProfile(
            household_size=row["household_size"],
            dwelling_type=row["house_type"],
            works_from_home=bool(row["work_from_home"]),
            has_heat_pump=bool(row["heat_pump"]),
            has_district_heating=bool(row["district_heating"]),
            has_solar_panels=bool(row["solar_panels"]),
        ),
        contract=ContractSnapshot(
            provider_name=row["current_provider"],
            contract_type=row["current_contract_type"],
            monthly_cost_eur=float(row["monthly_cost"]),
        ),
        estimate=estimate,
        verified_usage=verified,
        pending_extraction=PendingExtraction.model_validate_json(pending) if pending else None,
        latest_price_check=PriceCheckResult.model_validate_json(price_check) if price_check else None,
        subscription_tier=row["subscription_status"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SqliteProfileRepository(BaseProfileRepository):
    """Profile store on the sqlite ``profiles`` table."""

    def __init__(self, db_manager: DatabaseManager, timezone: str = "Europe/Amsterdam"):
        self.db_manager = db_manager
        self.timezone = pytz.timezone(timezone)
        self.logger = logging.getLogger(__name__)

    def find_by_id(self, user_id: str) -> Optional[Profile]:
        """Find a profile by user id."""
        try:
            df = self.db_manager.execute_query(
                "SELECT * FROM profiles WHERE user_id = ?", [user_id])
        except (sqlite3.Error, pd.errors.DatabaseError) as e:
            self.logger.error(f"Error reading profile {user_id}: {e}")
            raise PersistenceFailed(f"Could not read profile: {e}", user_id) from e
        return _row_to_profile(df.iloc[0]) if not df.empty else None

    def insert(self, profile: Profile) -> None:
        """Store a new profile row."""
        record: Dict[str, Any] = {"user_id": profile.user_id}
        for field in ("email", "zipcode", "house_number", "motivation", "household",
                      "contract", "estimate", "pending_extraction", "latest_price_check", "subscription_tier",
                      "created_at", "updated_at"):
            record.update(_columns_for(field, getattr(profile, field)))
        if profile.verified_usage is not None:
            record.update(_columns_for("verified_usage", profile.verified_usage))

        columns = ", ".join(record.keys())
        placeholders = ", ".join("?" for _ in record)
        try:
            self.db_manager.execute_update(
                f"INSERT INTO profiles ({columns}) VALUES ({placeholders})",
                list(record.values()))
        except sqlite3.IntegrityError as e:
            raise ProfileStateError(
                f"Profile {profile.user_id} already exists", profile.user_id) from e
        except sqlite3.Error as e:
            self.logger.error(f"Error inserting profile {profile.user_id}: {e}")
            raise PersistenceFailed(f"Could not store profile: {e}", profile.user_id) from e

    def update_fields(self, user_id: str, fields: Dict[str, Any]) -> None:
        """Update Profile fields; ``updated_at`` is always refreshed."""
        record: Dict[str, Any] = {}
        for field, value in fields.items():
            record.update(_columns_for(field, value))
        if "updated_at" not in fields:
            record["updated_at"] = datetime.now(self.timezone).isoformat()

        assignments = ", ".join(f"{column} = ?" for column in record)
        try:
            rows = self.db_manager.execute_update(
                f"UPDATE profiles SET {assignments} WHERE user_id = ?",
                list(record.values()) + [user_id])
        except sqlite3.Error as e:
            self.logger.error(f"Error updating profile {user_id}: {e}")
            raise PersistenceFailed(f"Could not update profile: {e}", user_id) from e

        if rows == 0:
            raise ProfileNotFound(f"Profile {user_id} not found", user_id)

    def count(self) -> int:
        """Count stored profiles."""
        try:
            return int(self.db_manager.execute_scalar("SELECT COUNT(*) FROM profiles") or 0)
        except sqlite3.Error as e:
            raise PersistenceFailed(f"Could not count profiles: {e}") from e
