# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Principal:
    """The authenticated identity behind a session."""

    uid: str
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Principal":
        """Builds a principal from verified Firebase ID token claims."""
        uid = claims.get("uid") or claims.get("sub")
        if not uid:
            raise ValueError("Token claims carry no uid.")
        return cls(uid=uid, email=claims.get("email"), claims=dict(claims))
