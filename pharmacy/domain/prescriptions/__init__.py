# Prescriptions domain module
