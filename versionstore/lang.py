"""Message catalogue for version views.

Generic field labels are the fallback when a table schema gives a field
no label of its own.
"""

MSC = {
    "version": "Version",
    "versioning": "Versioning",
    "restore": "Restore",
    "showDifferences": "Show differences",
    "identicalVersions": "The two versions are identical.",
    "noVersions": "There are no versions of {table}.id={record_id}",
    "recordOfTable": "Record ID {record_id} of table {table}",
    # Generic field labels
    "id": "ID",
    "pid": "Parent ID",
    "sorting": "Sorting value",
    "tstamp": "Revision date",
    "title": "Title",
    "alias": "Alias",
    "published": "Published",
    "start": "Show from",
    "stop": "Show until",
}


def field_label(key: str) -> str:
    """Generic label for a field key, or the key itself."""
    label = MSC.get(key)
    return label if label else key
