"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides a small Symfony project layout for metadata, maker and CLI tests.
"""

import json
import logging
import os
import sys
from pathlib import Path

import pytest
import structlog

# Insert local src directory at the beginning of sys.path
# This ensures that the local dtomaker package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of dtomaker modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("dtomaker"):
        del sys.modules[module_name]


TASK_ENTITY = r"""<?php

namespace App\Entity;

use App\Repository\TaskRepository;
use Doctrine\DBAL\Types\Types;
use Doctrine\ORM\Mapping as ORM;

#[ORM\Entity(repositoryClass: TaskRepository::class)]
class Task
{
    #[ORM\Id]
    #[ORM\GeneratedValue]
    #[ORM\Column]
    private ?int $id = null;

    #[ORM\Column(length: 255)]
    private ?string $task = null;

    #[ORM\Column(type: Types::DATE_MUTABLE, nullable: true)]
    private ?\DateTimeInterface $dueDate = null;

    public function getId(): ?int
    {
        return $this->id;
    }

    public function getTask(): ?string
    {
        return $this->task;
    }

    public function setTask(string $task): static
    {
        $this->task = $task;

        return $this;
    }

    public function getDueDate(): ?\DateTimeInterface
    {
        return $this->dueDate;
    }

    public function setDueDate(?\DateTimeInterface $dueDate): static
    {
        $this->dueDate = $dueDate;

        return $this;
    }
}
"""

BASE_ENTITY = r"""<?php

namespace App\Entity;

use Doctrine\ORM\Mapping as ORM;

#[ORM\MappedSuperclass]
abstract class BaseEntity
{
    #[ORM\Id]
    #[ORM\GeneratedValue]
    #[ORM\Column]
    protected ?int $id = null;

    #[ORM\Column(type: 'datetime_immutable')]
    protected ?\DateTimeImmutable $createdAt = null;

    public function getCreatedAt(): ?\DateTimeImmutable
    {
        return $this->createdAt;
    }
}
"""

POST_ENTITY = r"""<?php

namespace App\Entity;

use Doctrine\ORM\Mapping as ORM;
use Symfony\Component\Validator\Constraints as Assert;

/**
 * @ORM\Entity
 */
class Post extends BaseEntity
{
    /**
     * @ORM\Column(type="string", length=120)
     * @Assert\NotBlank
     * @Assert\Length(max=120)
     */
    private $title;

    /**
     * @ORM\Column(type="text", nullable=true)
     */
    private $body;

    /**
     * @ORM\ManyToOne(targetEntity="User")
     * @ORM\JoinColumn(nullable=false)
     */
    private $author;

    /**
     * @ORM\ManyToMany(targetEntity=Tag::class)
     */
    private $tags;

    private $transient;

    public function getTitle(): string
    {
        return $this->title;
    }

    protected function setTitle(string $title): void
    {
        $this->title = $title;
    }
}
"""

HELPER_CLASS = r"""<?php

namespace App\Entity;

class Helper
{
}
"""


def write_php(root: Path, relative: str, text: str) -> Path:
    """Write ``text`` to ``root/relative``, creating parent directories."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def php_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Composer project with App\\ -> src/ and one Task entity."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "composer.json").write_text(
        json.dumps({"name": "acme/todo", "autoload": {"psr-4": {"App\\": "src/"}}}),
        encoding="utf-8",
    )
    write_php(root, "src/Entity/Task.php", TASK_ENTITY)
    # Keep a developer's global config out of the tests
    monkeypatch.setattr("dtomaker.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for key in list(os.environ):
        if key.startswith("DTOMAKER__"):
            monkeypatch.delenv(key)
    return root


@pytest.fixture
def blog_project(php_project: Path) -> Path:
    """The Task project plus a mapped superclass, an annotated entity and non-entities."""
    entity_dir = php_project / "src" / "Entity"
    (entity_dir / "BaseEntity.php").write_text(BASE_ENTITY, encoding="utf-8")
    (entity_dir / "Post.php").write_text(POST_ENTITY, encoding="utf-8")
    (entity_dir / "Helper.php").write_text(HELPER_CLASS, encoding="utf-8")
    return php_project


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to CliRunner's streams once a test ends."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
