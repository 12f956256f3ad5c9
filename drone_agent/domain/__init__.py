"""领域层模型与协议。

- models: ChatMessage / ChatRequest / ChatResult 与 RetrievedDocument。
- conversation: 持久化消息记录、线程（Thread）与 ConversationStore 协议。
- exceptions: 统一业务异常体系。
"""
