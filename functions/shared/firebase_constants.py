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

# Firestore collection names. Collections are created on first write, so these
# constants are the only schema there is.

USERS_COLLECTION = "users"
CUSTOMERS_COLLECTION = "customers"
DRAWINGS_COLLECTION = "drawings"
BACKUP_HISTORY_COLLECTION = "backupHistory"
BUG_REPORTS_COLLECTION = "bugReports"
CUSTOMER_FORMS_COLLECTION = "customerForms"

# Field names shared with the browser client.
EMAIL_FIELD = "email"
CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"
MAX_CUSTOMERS_FIELD = "maxCustomers"
CUSTOMER_ID_FIELD = "customerId"
DRAWING_DATA_FIELD = "drawingData"

# Profile fields only the server writes. Client-supplied values are dropped.
PROTECTED_PROFILE_FIELDS = frozenset(
    {MAX_CUSTOMERS_FIELD, EMAIL_FIELD, UPDATED_AT_FIELD}
)
