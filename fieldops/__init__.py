"""fieldops - task dispatch, check-ins, payments and reports for an HVAC service crew."""
