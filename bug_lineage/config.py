"""
Configuration and constants for Bug Lineage.
"""

import os
import re

# =============================================================================
# PROJECT SETTINGS
# =============================================================================

PROJECT_NAME = os.environ.get('PROJECT_NAME', 'BOOKKEEPER').upper()

# Local clone of the project's repository
REPO_PATH = os.environ.get('REPO_PATH', '')

# =============================================================================
# JIRA API SETTINGS
# =============================================================================

JIRA_BASE_URL = os.environ.get('JIRA_BASE_URL', 'https://issues.apache.org/jira/rest/api/2/')
JIRA_USER = os.environ.get('JIRA_USER', '')
JIRA_TOKEN = os.environ.get('JIRA_TOKEN', '')

PAGE_SIZE = 100         # Jira search page size
REQUEST_TIMEOUT = 30    # seconds

# Jira timestamps look like 2014-06-11T09:21:43.000+0000
JIRA_DATE_FORMAT = '%Y-%m-%dT%H:%M:%S.%f%z'
RELEASE_DATE_FORMAT = '%Y-%m-%d'

# Default ticket query: fixed bugs only
DEFAULT_STATUSES = ('Closed', 'Resolved')
DEFAULT_TYPES = ('Bug',)
DEFAULT_RESOLUTIONS = ('Fixed',)

# =============================================================================
# RELEASE / PROPORTION SETTINGS
# =============================================================================

# Reference release used by both proportion strategies
BASELINE_RELEASE = os.environ.get('BASELINE_RELEASE', '4.0.0')

# Fallback proportion when no ticket has consistent OV/IV/FV
DEFAULT_PROPORTION = 0.5

# Fraction of the (date-ordered) releases to keep
RELEASE_PERCENTAGE = float(os.environ.get('RELEASE_PERCENTAGE', '1.0'))

# =============================================================================
# TICKET REFERENCE PATTERNS
# =============================================================================

# Applied to the upper-cased commit message
ISSUE_REFERENCE = re.compile(r'ISSUE\s\d+')      # legacy "ISSUE 123"
HASHTAG_REFERENCE = re.compile(r'#\d+')          # shorthand "#123"
DIGITS = re.compile(r'\d+')


def project_reference(project: str) -> re.Pattern:
    """Pattern for canonical references such as BOOKKEEPER-123"""
    return re.compile(re.escape(project.upper()) + r'-\d+')
