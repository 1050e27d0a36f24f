"""
Redaction rules for tpsim.

Field-name table, placeholder values and patterns used by the Redactor.
Field names are matched case-exactly against JSON object keys.
"""

import re

TOKEN_PARAM = 'access_token'

# Placeholders
TEST_EMAIL = 'testuser@example.com'
TEST_LOGIN = 'testuser'
TEST_FIRST_NAME = 'Test'
TEST_LAST_NAME = 'User'
TEST_FULL_NAME = 'Test User'
REDACTED_TEXT = 'Redacted text'
REDACTED_VALUE = 'Redacted value'
REDACTED_DESCRIPTION_ATTR = 'Description="Redacted description"'

# Strategies
EMAIL = 'email'
LOGIN = 'login'
FIRST_NAME = 'firstname'
LAST_NAME = 'lastname'
FULL_NAME = 'fullname'
URL = 'url'
TEXT = 'text'

FIXED_REPLACEMENTS = {
    EMAIL: TEST_EMAIL,
    LOGIN: TEST_LOGIN,
    FIRST_NAME: TEST_FIRST_NAME,
    LAST_NAME: TEST_LAST_NAME,
    FULL_NAME: TEST_FULL_NAME,
    TEXT: REDACTED_TEXT,
}

SENSITIVE_FIELDS = {
    'Description': TEXT,
    'Login': LOGIN,
    'Email': EMAIL,
    'FirstName': FIRST_NAME,
    'LastName': LAST_NAME,
    'FullName': FULL_NAME,
    'Icon': URL,
    'AvatarUri': URL,
    'Company': TEXT,
    'Phone': TEXT,
    'Tags': TEXT,
    'CustomField1': TEXT,
    'CustomField2': TEXT,
    'CustomField3': TEXT,
}

NAME_FIELDS = ('Name', 'name')
RESOURCE_TYPE_FIELDS = ('ResourceType', 'resourceType')
CUSTOM_FIELD_VALUE = 'Value'

# Classification types whose names are structural and stay as captured
STRUCTURAL_TYPES = frozenset({
    'EntityState',
    'EntityType',
    'Priority',
    'Role',
    'Process',
    'Workflow',
})

DEFAULT_RESOURCE_TYPE = 'Entity'

EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')
DESCRIPTION_ATTR_PATTERN = re.compile(r'Description="[^"]*"')


def keeps_name(resource_type: str) -> bool:
    """True if objects of this resource type keep their real Name."""
    return resource_type in STRUCTURAL_TYPES
