# Core configuration, constants and database plumbing
