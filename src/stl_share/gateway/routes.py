"""HTTP route names and query parameters of the share gateway."""

ROUTE_HEALTH = "health"
ROUTE_DRIVE_PROXY = "drive-proxy"
ROUTE_ISSUE_TOKEN = "share/token"
ROUTE_VALIDATE_TOKEN = "share/validate"
ROUTE_SHARED_FILE = "share/file"
ROUTE_SHARED_FOLDER = "share/folder"
ROUTE_SHARED_FOLDER_FILE = "share/folder/file"

PARAM_TOKEN = "token"
PARAM_RESOURCE_ID = "resourceId"
PARAM_FOLDER_ID = "folderId"
PARAM_FILE_ID = "fileId"
