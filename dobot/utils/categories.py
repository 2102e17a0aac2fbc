"""Category rule table for one-click applications.

The provider does not report categories, so applications are bucketed by an
ordered rule table: the popular slug allow-list wins, then the first keyword
group (in table order) whose keyword appears in the name, slug or
description, else ``other``.
"""

from __future__ import annotations

from typing import Any, Dict, List

POPULAR_CATEGORY = "popular"
OTHER_CATEGORY = "other"

MARKETPLACE_CATEGORIES: Dict[str, Dict[str, Any]] = {
    "popular": {
        "icon": "⭐",
        "name": "Popular Apps",
        "slugs": [
            "wordpress-20-04",
            "docker-20-04",
            "nodejs-20-04",
            "mysql-20-04",
            "mariadb",
            "redis-7-22-04",
            "gitlab-gitlabenterprise-20-04",
            "nginx",
            "lamp-22-04",
            "lemp-22-04",
            "mean",
            "mern",
            "discourse-20-04",
            "ghost-20-04",
            "nextcloudgmbh-nextcloud",
        ],
    },
    "cms": {
        "icon": "📝",
        "name": "CMS & Blogs",
        "keywords": ["wordpress", "ghost", "joomla", "drupal", "discourse", "microweber"],
    },
    "databases": {
        "icon": "🗄️",
        "name": "Databases",
        "keywords": [
            "mysql", "postgresql", "mongodb", "redis", "mariadb",
            "cassandra", "influxdb", "clickhouse", "questdb", "edgedb",
        ],
    },
    "devtools": {
        "icon": "🛠️",
        "name": "Developer Tools",
        "keywords": ["docker", "gitlab", "jenkins", "git", "vscode", "code-server", "coder"],
    },
    "webservers": {
        "icon": "🌐",
        "name": "Web Servers",
        "keywords": [
            "nginx", "apache", "lamp", "lemp", "mean", "mern",
            "nodejs", "django", "flask", "rails", "farm",
        ],
    },
    "ai": {
        "icon": "🤖",
        "name": "AI & ML",
        "keywords": [
            "jupyter", "pytorch", "tensorflow", "ollama", "deepseek",
            "ai", "ml", "anaconda", "rocm", "vllm",
        ],
    },
    "monitoring": {
        "icon": "📊",
        "name": "Monitoring",
        "keywords": ["grafana", "prometheus", "zabbix", "netdata", "uptimekuma", "uptime"],
    },
    "messaging": {
        "icon": "💬",
        "name": "Chat & Messaging",
        "keywords": ["mattermost", "rocket.chat", "matrix", "discord", "jitsi"],
    },
    "control": {
        "icon": "⚙️",
        "name": "Control Panels",
        "keywords": [
            "plesk", "cpanel", "cloudron", "easypanel", "runcloud",
            "ispmanager", "caprover", "coolify",
        ],
    },
}

OTHER_CATEGORY_INFO = {"icon": "📦", "name": "Other"}

# Distribution keywords offered under "Popular" for base images.
POPULAR_DISTRIBUTIONS: List[str] = ["ubuntu", "debian", "centos", "fedora", "rocky"]


def category_info(category_id: str) -> Dict[str, Any]:
    """Return the display record for a category id, falling back to 'other'."""
    return MARKETPLACE_CATEGORIES.get(category_id, OTHER_CATEGORY_INFO)


def category_ids() -> List[str]:
    """All browsable category ids in table order, ending with 'other'."""
    return list(MARKETPLACE_CATEGORIES) + [OTHER_CATEGORY]
