"""Conduit method names used by phabulous."""

# Session handling
CONDUIT_CONNECT = "conduit.connect"
CONDUIT_PING = "conduit.ping"

# Diffusion: commits
DIFFUSION_QUERY_COMMITS = "diffusion.querycommits"

# Repositories
REPOSITORY_QUERY = "repository.query"

# Maniphest: tasks
MANIPHEST_QUERY = "maniphest.query"
