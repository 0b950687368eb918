"""Testing – in-memory doubles for the filevault ports."""
