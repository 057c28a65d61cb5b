# Sales domain module
