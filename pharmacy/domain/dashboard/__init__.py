# Dashboard domain module
