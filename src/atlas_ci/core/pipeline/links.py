"""
StepLinks: arestas do grafo de dependências entre Steps.

Um StepLink é um valor opaco, imutável e comparável que descreve uma
condição do pipeline ("as imagens estão prontas", "o artefato X está
disponível"). Cada Step declara os links que exige (`requires`) e os que
cria (`creates`); o scheduler externo ordena os Steps casando uns com os
outros.

Invariantes:
    - Links são frozen dataclasses (hashable, seguros em sets e dicts)
    - Um link é satisfeito apenas por um link igual
    - Nenhum Step altera um link após construí-lo

Vocabulário do scheduler:
    O WorkloadStep usa apenas `images_ready_link` e `artifact_link`. Os
    demais construtores (imagens externas e internas, repositório RPM,
    imagens de release) existem para o scheduler externo e para os Steps
    de build e release que declaram essas arestas; fazem parte do
    contrato público deste módulo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class ImageStreamTagReference:
    """Referência a uma imagem externa: cluster/namespace/name:tag, apelidada por `as_`."""

    name: str
    tag: str
    cluster: str = ""
    namespace: str = ""
    as_: str = ""

    @property
    def pull_spec(self) -> str:
        return f"{self.name}:{self.tag}"


@dataclass(frozen=True)
class StepLink:
    """Aresta do grafo; `kind` identifica a família e `target` o recurso."""

    kind: str
    target: str = ""

    def satisfied_by(self, other: "StepLink") -> bool:
        return self == other

    def __str__(self) -> str:
        return f"{self.kind}:{self.target}" if self.target else self.kind


IMAGES_READY = "images-ready"
EXTERNAL_IMAGE = "external-image"
INTERNAL_IMAGE = "internal-image"
RPM_REPO = "rpm-repo"
RELEASE_IMAGES = "release-images"
ARTIFACT = "artifact"


def images_ready_link() -> StepLink:
    return StepLink(IMAGES_READY)


def external_image_link(ref: ImageStreamTagReference) -> StepLink:
    target = "/".join(p for p in (ref.cluster, ref.namespace, ref.pull_spec) if p)
    return StepLink(EXTERNAL_IMAGE, target)


def internal_image_link(tag: str) -> StepLink:
    return StepLink(INTERNAL_IMAGE, tag)


def rpm_repo_link() -> StepLink:
    return StepLink(RPM_REPO)


def release_images_link() -> StepLink:
    return StepLink(RELEASE_IMAGES)


def artifact_link(name: str) -> StepLink:
    """Link publicado por um Step que disponibiliza o artefato `name` ao concluir."""
    return StepLink(ARTIFACT, name)


def links_satisfied(required: Iterable[StepLink], created: Iterable[StepLink]) -> bool:
    """True quando cada link exigido é satisfeito por algum link criado."""
    created_list: List[StepLink] = list(created)
    return all(
        any(link.satisfied_by(candidate) for candidate in created_list)
        for link in required
    )
