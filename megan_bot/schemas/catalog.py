from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Product(BaseModel):
    """One catalog entry. Accepts the store's Spanish keys as aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, coerce_numbers_to_str=True)

    code: str = Field(validation_alias=AliasChoices("code", "codigo"))
    name: str = Field(validation_alias=AliasChoices("name", "nombre"))
    description: str = Field(default="", validation_alias=AliasChoices("description", "descripcion"))
    price: str = Field(validation_alias=AliasChoices("price", "precio"))
    image_url: str = Field(validation_alias=AliasChoices("image_url", "imageUrl", "imagen"))

    def card_text(self) -> str:
        return f"{self.name}\n{self.description}\n💰 Precio: S/{self.price}"
