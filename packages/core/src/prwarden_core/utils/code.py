# Images, archives and PDFs: their patches are empty or meaningless to a reviewer.
BINARY_EXTENSIONS = (
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".svg",
    ".ico",
    ".pdf",
    ".zip",
    ".tar",
    ".gz",
)


def is_binary_file(file_name: str) -> bool:
    return file_name.lower().endswith(BINARY_EXTENSIONS)
