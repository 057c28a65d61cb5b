# Inventory domain module
