"""Schemas for matching local ecosystems against an external profile list."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ExternalProfile(BaseModel):
    """A profile as reported by the posting-statistics provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class MatchedPair(BaseModel):
    local_id: str
    local_name: str
    external_id: str
    external_name: str
    # Links are proposed, never persisted
    already_linked: bool = False


class UnmatchedLocal(BaseModel):
    local_id: str
    local_name: str


class UnmatchedExternal(BaseModel):
    external_id: str
    external_name: str


class ReconciliationOutcome(BaseModel):
    """Result of a one-pass name match between two collections."""

    matched: List[MatchedPair] = Field(default_factory=list)
    unmatched_local: List[UnmatchedLocal] = Field(default_factory=list)
    unmatched_external: List[UnmatchedExternal] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def summary(self) -> dict:
        return {
            "total_local": len(self.matched) + len(self.unmatched_local),
            "total_external": len(self.matched) + len(self.unmatched_external),
            "matched_count": len(self.matched),
            "unmatched_local_count": len(self.unmatched_local),
            "unmatched_external_count": len(self.unmatched_external),
        }

    def to_sync_response(self) -> dict:
        """Shape returned to the web layer for an ecosystem/profile sync."""
        return {
            "success": True,
            "sync_results": {
                "matched": [
                    {
                        "ecosystem_id": pair.local_id,
                        "ecosystem_name": pair.local_name,
                        "profile_id": pair.external_id,
                        "profile_name": pair.external_name,
                        "already_linked": pair.already_linked,
                    }
                    for pair in self.matched
                ],
                "unmatched_ecosystems": [
                    {"ecosystem_id": item.local_id, "ecosystem_name": item.local_name}
                    for item in self.unmatched_local
                ],
                "unmatched_profiles": [
                    {"profile_id": item.external_id, "profile_name": item.external_name}
                    for item in self.unmatched_external
                ],
            },
            "summary": {
                "total_matched": len(self.matched),
                "total_unmatched_ecosystems": len(self.unmatched_local),
                "total_unmatched_profiles": len(self.unmatched_external),
            },
        }
