"""
Blood Type Compatibility Helper
Determines which donor blood types can supply which recipient blood types
"""

BLOOD_TYPES = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

# Donor -> recipients it can safely give to (ABO/Rh transfusion rules)
COMPATIBILITY = {
    'O-': ['O-', 'O+', 'A-', 'A+', 'B-', 'B+', 'AB-', 'AB+'],  # Universal donor
    'O+': ['O+', 'A+', 'B+', 'AB+'],
    'A-': ['A-', 'A+', 'AB-', 'AB+'],
    'A+': ['A+', 'AB+'],
    'B-': ['B-', 'B+', 'AB-', 'AB+'],
    'B+': ['B+', 'AB+'],
    'AB-': ['AB-', 'AB+'],
    'AB+': ['AB+'],
}

# Recipient -> donor types it can receive from, exact match first
RECEIVABLE_FROM = {
    'A+': ['A+', 'A-', 'O+', 'O-'],
    'A-': ['A-', 'O-'],
    'B+': ['B+', 'B-', 'O+', 'O-'],
    'B-': ['B-', 'O-'],
    'AB+': ['AB+', 'A+', 'A-', 'B+', 'B-', 'AB-', 'O+', 'O-'],  # Universal recipient
    'AB-': ['AB-', 'A-', 'B-', 'O-'],
    'O+': ['O+', 'O-'],
    'O-': ['O-'],
}


def normalize_blood_type(blood_type):
    """Trim and upper-case a blood type value ('ab+ ' -> 'AB+')."""
    if blood_type is None:
        return ''
    return str(blood_type).strip().upper()


def is_compatible(donor_blood_type, recipient_blood_type):
    """
    Check if donor blood type is compatible with recipient

    Args:
        donor_blood_type: Donor's blood type (e.g., 'O+')
        recipient_blood_type: Recipient's blood type (e.g., 'A+')

    Returns:
        Boolean: True if compatible, False otherwise
    """
    donor_blood_type = normalize_blood_type(donor_blood_type)
    if donor_blood_type not in COMPATIBILITY:
        return False

    return normalize_blood_type(recipient_blood_type) in COMPATIBILITY[donor_blood_type]


def compatible_donor_types(requested_blood_type):
    """
    Get the ordered blood types that can donate to the requested type

    An unknown type is returned unchanged as a one-element list, so a request
    with an unexpected blood type value still reaches exact-match donors
    instead of being dropped.

    Args:
        requested_blood_type: Recipient's blood type

    Returns:
        List of compatible donor blood types (no duplicates)
    """
    key = normalize_blood_type(requested_blood_type)
    if key not in RECEIVABLE_FROM:
        return [requested_blood_type]

    return list(RECEIVABLE_FROM[key])


def get_compatible_recipients(donor_blood_type):
    """
    Get list of blood types that can receive from donor

    Args:
        donor_blood_type: Donor's blood type

    Returns:
        List of compatible recipient blood types
    """
    return list(COMPATIBILITY.get(normalize_blood_type(donor_blood_type), []))
